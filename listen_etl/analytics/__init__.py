"""
Listen Analytics ETL - Analytics Module
Fixed battery of read-only queries run after the load
"""

from .queries import (
    QueryResult,
    most_popular_tracks,
    users_with_most_unique_tracks,
    most_popular_artist,
    monthly_listen_activities,
    artist_fanboys,
    count_rows
)

__all__ = [
    'QueryResult',
    'most_popular_tracks',
    'users_with_most_unique_tracks',
    'most_popular_artist',
    'monthly_listen_activities',
    'artist_fanboys',
    'count_rows'
]
