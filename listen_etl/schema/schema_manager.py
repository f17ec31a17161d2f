"""
Listen Analytics ETL - Schema Manager
Drop/recreate of the two target tables, index build and index
maintenance toggling around bulk loads.

Every operation is attempted for both tables; a failure on one table is
logged and never stops the other. Whether a failure is then raised depends
on whether later steps rely on it:

- drop, index toggles, reindex: logged only
- create table, create index: raised as SchemaError once both tables settled

Tables are created with a plain CREATE TABLE, so a table that survived a
failed drop makes the create fail instead of letting a load append to it.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import psycopg2

from ..db_utils import DatabaseManager
from ..exceptions import SchemaError

logger = logging.getLogger(__name__)

TRACKS_TABLE = 'tracks'
ACTIVITIES_TABLE = 'listen_activities'


@dataclass(frozen=True)
class TableDefinition:
    name: str
    columns: Tuple[Tuple[str, str], ...]
    index_name: str
    index_columns: Tuple[str, ...]

    @property
    def column_names(self) -> List[str]:
        return [name for name, _ in self.columns]

    def create_sql(self) -> str:
        cols = ', '.join(f"{name} {sql_type}" for name, sql_type in self.columns)
        return f"CREATE TABLE {self.name} ({cols})"

    def drop_sql(self) -> str:
        return f"DROP TABLE IF EXISTS {self.name}"

    def index_sql(self) -> str:
        return f"CREATE INDEX {self.index_name} ON {self.name}({', '.join(self.index_columns)})"


TRACKS = TableDefinition(
    name=TRACKS_TABLE,
    columns=(
        ('recording_id', 'TEXT'),
        ('track_id', 'TEXT'),
        ('artist_name', 'TEXT'),
        ('track_name', 'TEXT'),
    ),
    index_name='track_index',
    index_columns=('track_id', 'artist_name', 'track_name'),
)

LISTEN_ACTIVITIES = TableDefinition(
    name=ACTIVITIES_TABLE,
    columns=(
        ('user_id', 'TEXT'),
        ('track_id', 'TEXT'),
        ('activity_date', 'NUMERIC'),
    ),
    index_name='activity_index',
    index_columns=('track_id', 'user_id', 'activity_date'),
)

TABLES = (TRACKS, LISTEN_ACTIVITIES)

# pg_index.indisready controls whether writes maintain the index
SET_INDEX_READY_SQL = """
    UPDATE pg_index
    SET indisready = %s
    WHERE indrelid = (
        SELECT oid
        FROM pg_class
        WHERE relname = %s
    )
"""


class SchemaManager:
    """Schema operations over the shared connection"""

    def __init__(self, db_manager: DatabaseManager, tables: Sequence[TableDefinition] = TABLES):
        self.db_manager = db_manager
        self.tables = tuple(tables)

    def _attempt(self, tag: str, description: str, query: str, params: Optional[tuple] = None) -> Optional[Exception]:
        """Run one statement; log and return its error instead of raising"""
        try:
            self.db_manager.execute(query, params)
        except psycopg2.Error as e:
            logger.error(f"[{tag}] {description} failed: {(e.pgerror or str(e)).strip()}")
            return e
        logger.info(f"[{tag}] {description} done.")
        return None

    def reset_schema(self) -> None:
        """
        Drop both tables if present and recreate them empty

        Raises:
            SchemaError: a table could not be created, including when its
                drop failed and the old table is still there
        """
        create_errors: Dict[str, Exception] = {}

        for table in self.tables:
            self._attempt('init', f"Dropping {table.name} table", table.drop_sql())
            error = self._attempt('init', f"Creating {table.name} table", table.create_sql())
            if error is not None:
                create_errors[table.name] = error

        if create_errors:
            raise SchemaError(f"Could not create table(s): {', '.join(create_errors)}") from next(iter(create_errors.values()))

    def build_indexes(self) -> None:
        """
        Create the composite index on each table

        Not idempotent: a second call without reset_schema() in between fails
        on the existing index names.

        Raises:
            SchemaError: any index could not be created
        """
        errors: Dict[str, Exception] = {}

        for table in self.tables:
            error = self._attempt('index', f"Indexing {table.name} table", table.index_sql())
            if error is not None:
                errors[table.name] = error

        if errors:
            raise SchemaError(f"Could not index table(s): {', '.join(errors)}") from next(iter(errors.values()))

    def _set_index_maintenance(self, enabled: bool) -> None:
        verb = 'Enabling' if enabled else 'Disabling'
        for table in self.tables:
            self._attempt('index', f"{verb} index maintenance on {table.name}", SET_INDEX_READY_SQL, (enabled, table.name))

    def disable_index_maintenance(self) -> None:
        """Stop index upkeep during heavy writes (best effort; needs superuser)"""
        self._set_index_maintenance(False)

    def enable_index_maintenance(self) -> None:
        """
        Resume index upkeep and rebuild the indexes (best effort)

        Rows written while upkeep was off are missing from existing indexes,
        so every index is rebuilt once it is marked ready again.
        """
        self._set_index_maintenance(True)
        self.reindex_tables()

    def reindex_tables(self) -> None:
        """Rebuild every index on both tables (best effort)"""
        for table in self.tables:
            self._attempt('index', f"Reindexing {table.name} table", f"REINDEX TABLE {table.name}")
