"""
Listen Analytics ETL - Schema Module
"""

from .schema_manager import (
    SchemaManager,
    TableDefinition,
    TRACKS,
    LISTEN_ACTIVITIES,
    TABLES
)

__all__ = [
    'SchemaManager',
    'TableDefinition',
    'TRACKS',
    'LISTEN_ACTIVITIES',
    'TABLES'
]
