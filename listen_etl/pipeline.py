"""
Listen Analytics ETL - Pipeline
Assembles the fixed task sequence:

    initialize_tables -> fill_database -> index_tables -> 5 analytics queries -> quit

and runs it with the TaskOrchestrator over one shared connection.
"""

import logging
from typing import Dict, List, Optional

from .analytics import queries
from .analytics.queries import QueryResult
from .config import Settings
from .db_utils import DatabaseManager
from .ingestion.bulk_loader import BulkLoader, LoadJob, LoadSummary, run_load_jobs
from .orchestration.task_orchestrator import Task, TaskOrchestrator
from .presentation import ResultPrinter
from .schema.schema_manager import SchemaManager, TRACKS, LISTEN_ACTIVITIES

logger = logging.getLogger(__name__)


def build_load_jobs(settings: Settings) -> List[LoadJob]:
    """The two load jobs: tracks file and listen activities file"""
    return [
        LoadJob(
            source=settings.tracks_file,
            table=TRACKS.name,
            columns=tuple(TRACKS.column_names),
            delimiter=settings.replacement,
        ),
        LoadJob(
            source=settings.activities_file,
            table=LISTEN_ACTIVITIES.name,
            columns=tuple(LISTEN_ACTIVITIES.column_names),
            delimiter=settings.replacement,
        ),
    ]


class ListenPipeline:
    """
    Wires schema management, bulk loading and analytics into one sequence

    Args:
        db_manager: Handle acquired by the caller; closed by the quit step
        settings: Runtime settings
        printer: Where query results go; defaults to stdout in settings.mode
        jobs: Load jobs; defaults to build_load_jobs(settings)
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        settings: Settings,
        printer: Optional[ResultPrinter] = None,
        jobs: Optional[List[LoadJob]] = None
    ):
        self.db_manager = db_manager
        self.settings = settings
        self.printer = printer or ResultPrinter(settings.mode)
        self.jobs = jobs if jobs is not None else build_load_jobs(settings)
        self.schema = SchemaManager(db_manager)
        self.loader = BulkLoader(
            db_manager,
            sentinel=settings.sentinel,
            replacement=settings.replacement,
            chunk_size=settings.chunk_size,
        )
        self.load_summary: Optional[LoadSummary] = None
        self.results: Dict[str, QueryResult] = {}
        self.orchestrator: Optional[TaskOrchestrator] = None

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def initialize_tables(self) -> None:
        self.schema.reset_schema()

    def fill_database(self) -> None:
        self.schema.disable_index_maintenance()
        try:
            self.load_summary = run_load_jobs(self.loader, self.jobs)
        finally:
            self.schema.enable_index_maintenance()

        for outcome in self.load_summary.outcomes:
            logger.info(f"[load] {outcome.table}: {outcome.rows_loaded} rows in {outcome.elapsed_seconds:.2f}s")

    def index_tables(self) -> None:
        self.schema.build_indexes()

    def _show(self, result: QueryResult) -> None:
        self.results[result.name] = result
        self.printer.show(result)

    def get_most_popular_tracks(self) -> None:
        self._show(queries.most_popular_tracks(self.db_manager))

    def get_users_with_most_unique_tracks(self) -> None:
        self._show(queries.users_with_most_unique_tracks(self.db_manager))

    def get_most_popular_artist(self) -> None:
        self._show(queries.most_popular_artist(self.db_manager))

    def get_monthly_listen_activities(self) -> None:
        self._show(queries.monthly_listen_activities(self.db_manager))

    def get_artist_fanboys(self) -> None:
        self._show(queries.artist_fanboys(self.db_manager))

    def quit(self) -> None:
        self.db_manager.close()

    # ------------------------------------------------------------------

    def tasks(self) -> List[Task]:
        steps = [
            self.initialize_tables,
            self.fill_database,
            self.index_tables,
            self.get_most_popular_tracks,
            self.get_users_with_most_unique_tracks,
            self.get_most_popular_artist,
            self.get_monthly_listen_activities,
            self.get_artist_fanboys,
            self.quit,
        ]
        return [Task(step.__name__, step) for step in steps]

    def run(self) -> Dict[str, QueryResult]:
        """
        Run the whole sequence

        The connection is closed even when a step fails; the failure then
        propagates as TaskFailedError.

        Returns:
            Query results keyed by query name
        """
        self.orchestrator = TaskOrchestrator(self.tasks(), instrument=not self.settings.is_prod)
        try:
            self.orchestrator.run()
        finally:
            self.db_manager.close()
        return self.results
