"""
Listen Analytics ETL - Analytical Queries
Read-only queries over tracks and listen_activities.

Each query returns a QueryResult; rendering is left to listen_etl.presentation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..db_utils import DatabaseManager
from ..schema.schema_manager import TABLES

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """Column names plus row tuples of one analytical query"""
    name: str
    columns: List[str]
    rows: List[Tuple[Any, ...]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_records(self) -> List[Dict[str, Any]]:
        return [dict(zip(self.columns, row)) for row in self.rows]


MOST_POPULAR_TRACKS_SQL = """
    SELECT track_name, artist_name, COUNT(*) AS popularity_counter
    FROM tracks JOIN listen_activities USING (track_id)
    GROUP BY artist_name, track_name
    ORDER BY popularity_counter DESC, artist_name, track_name
    LIMIT %s
"""

USERS_WITH_MOST_UNIQUE_TRACKS_SQL = """
    SELECT user_id, COUNT(DISTINCT track_id) AS unique_tracks_counter
    FROM tracks JOIN listen_activities USING (track_id)
    GROUP BY user_id
    ORDER BY unique_tracks_counter DESC, user_id
    LIMIT %s
"""

MOST_POPULAR_ARTIST_SQL = """
    SELECT artist_name, COUNT(*) AS listen_counter
    FROM tracks JOIN listen_activities USING (track_id)
    GROUP BY artist_name
    ORDER BY listen_counter DESC, artist_name
    LIMIT 1
"""

# activity_date holds unix epoch seconds; months are bucketed in UTC
MONTHLY_LISTEN_ACTIVITIES_SQL = """
    SELECT EXTRACT(MONTH FROM TO_TIMESTAMP(activity_date) AT TIME ZONE 'UTC')::int AS month,
           COUNT(*) AS count
    FROM tracks JOIN listen_activities USING (track_id)
    GROUP BY month
    ORDER BY month ASC
"""

ARTIST_FANBOYS_SQL = """
    SELECT COUNT(DISTINCT hits.track_id) AS hits_listened, activities.user_id
    FROM listen_activities AS activities
    JOIN (
        SELECT COUNT(*) AS listen_counter, track_id
        FROM tracks JOIN listen_activities USING (track_id)
        WHERE lower(artist_name) = lower(%s)
        GROUP BY track_id
        ORDER BY listen_counter DESC, track_id
        LIMIT %s
    ) AS hits
    ON activities.track_id = hits.track_id
    GROUP BY activities.user_id
    HAVING COUNT(DISTINCT hits.track_id) = %s
    ORDER BY activities.user_id DESC
"""


def _run(db_manager: DatabaseManager, name: str, query: str, params: Optional[tuple] = None) -> QueryResult:
    columns, rows = db_manager.fetch_with_columns(query, params)
    logger.debug(f"[query] {name}: {len(rows)} rows")
    return QueryResult(name=name, columns=columns, rows=[tuple(row) for row in rows])


def most_popular_tracks(db_manager: DatabaseManager, limit: int = 10) -> QueryResult:
    return _run(db_manager, 'most_popular_tracks', MOST_POPULAR_TRACKS_SQL, (limit,))


def users_with_most_unique_tracks(db_manager: DatabaseManager, limit: int = 10) -> QueryResult:
    return _run(db_manager, 'users_with_most_unique_tracks', USERS_WITH_MOST_UNIQUE_TRACKS_SQL, (limit,))


def most_popular_artist(db_manager: DatabaseManager) -> QueryResult:
    return _run(db_manager, 'most_popular_artist', MOST_POPULAR_ARTIST_SQL)


def monthly_listen_activities(db_manager: DatabaseManager) -> QueryResult:
    return _run(db_manager, 'monthly_listen_activities', MONTHLY_LISTEN_ACTIVITIES_SQL)


def artist_fanboys(db_manager: DatabaseManager, artist: str = 'queen', top_n: int = 3) -> QueryResult:
    """Users who listened to every one of the artist's top_n most played tracks"""
    return _run(db_manager, 'artist_fanboys', ARTIST_FANBOYS_SQL, (artist, top_n, top_n))


def count_rows(db_manager: DatabaseManager, table: str) -> int:
    """Row count of one of the managed tables"""
    known: Sequence[str] = [t.name for t in TABLES]
    if table not in known:
        raise ValueError(f"Unknown table {table!r}; expected one of {known}")
    _, rows = db_manager.fetch_with_columns(f"SELECT COUNT(*) FROM {table}")
    return rows[0][0] if rows else 0
