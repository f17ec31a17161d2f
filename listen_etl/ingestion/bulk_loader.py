"""
Listen Analytics ETL - Bulk Loader
Streams raw delimited files through the delimiter rewriter into
PostgreSQL COPY ... FROM STDIN

Features:
- Constant-memory streaming of arbitrarily large files
- First error from the source file, the rewriter or the COPY channel wins
- Wait-all execution of independent load jobs (no sibling cancellation)
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, List, Optional, Sequence, Union

import psycopg2
from psycopg2 import sql

from ..config import (
    DEFAULT_SENTINEL, DEFAULT_REPLACEMENT, DEFAULT_CHUNK_SIZE,
    validate_copy_delimiter, validate_rewrite_tokens
)
from ..db_utils import DatabaseManager
from ..exceptions import LoadError
from .delimiter_rewriter import DelimiterRewriter

logger = logging.getLogger(__name__)

Source = Union[str, Path, IO[str]]


@dataclass(frozen=True)
class LoadJob:
    """One bulk-load invocation: source file into table over columns"""
    source: Source
    table: str
    columns: Sequence[str]
    delimiter: str = DEFAULT_REPLACEMENT


@dataclass
class LoadOutcome:
    """Result of a single load job"""
    table: str
    rows_loaded: int = 0
    elapsed_seconds: float = 0.0
    error: Optional[LoadError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class LoadSummary:
    """Outcomes of a batch of load jobs"""
    outcomes: List[LoadOutcome] = field(default_factory=list)

    @property
    def failures(self) -> List[LoadOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def total_rows(self) -> int:
        return sum(o.rows_loaded for o in self.outcomes)


def build_copy_sql(table: str, columns: Sequence[str], delimiter: str) -> sql.Composed:
    """COPY table (columns) FROM STDIN in text format with the given delimiter"""
    validate_copy_delimiter(delimiter)
    if not columns:
        raise ValueError(f"No columns given for COPY into {table}")

    return sql.SQL("COPY {table} ({columns}) FROM STDIN WITH (FORMAT text, DELIMITER {delimiter})").format(
        table=sql.Identifier(table),
        columns=sql.SQL(', ').join(sql.Identifier(c) for c in columns),
        delimiter=sql.Literal(delimiter),
    )


class BulkLoader:
    """
    Loads one rewritten stream per call through the store's COPY channel

    Args:
        db_manager: Shared database handle
        sentinel: Token in the raw files to rewrite
        replacement: Token it becomes
        chunk_size: Characters read from the source per rewrite step
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        sentinel: str = DEFAULT_SENTINEL,
        replacement: str = DEFAULT_REPLACEMENT,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        validate_rewrite_tokens(sentinel, replacement)
        self.db_manager = db_manager
        self.sentinel = sentinel
        self.replacement = replacement
        self.chunk_size = chunk_size

    def load(self, source: Source, table: str, columns: Sequence[str], delimiter: str) -> int:
        """
        Pipe one source into ``table``

        Args:
            source: Path of a text file, or an already open text stream
            table: Target table
            columns: Target columns in file order
            delimiter: Single-character field separator declared to COPY

        Returns:
            Number of rows loaded

        Raises:
            LoadError: source, rewrite or COPY failure
            ValueError: invalid delimiter
        """
        copy_sql = build_copy_sql(table, columns, delimiter)

        if isinstance(source, (str, Path)):
            path = Path(source)
            try:
                stream = open(path, 'r', encoding='utf-8', newline='')
            except OSError as e:
                logger.error(f"[load] Cannot open {path} for {table}: {e}")
                raise LoadError(table, e) from e
            label = path.name
        else:
            stream = source
            label = getattr(source, 'name', '<stream>')

        try:
            return self._copy(stream, copy_sql, table, label)
        finally:
            if stream is not source:
                stream.close()

    def _copy(self, stream: IO[str], copy_sql: sql.Composed, table: str, label: str) -> int:
        rewriter = DelimiterRewriter(stream, self.sentinel, self.replacement, self.chunk_size)
        logger.info(f"[load] Copying {label} into {table}")

        try:
            rows = self.db_manager.copy_from_stream(copy_sql, rewriter, size=self.chunk_size)
        except psycopg2.Error as e:
            message = (e.pgerror or str(e)).strip()
            logger.error(f"[load] COPY into {table} rejected: {message}")
            raise LoadError(table, e) from e
        except (OSError, ValueError) as e:
            # Raised by the source read or the rewriter while the channel was open
            logger.error(f"[load] Reading {label} failed: {e}")
            raise LoadError(table, e) from e

        logger.info(f"[load] {table}: {rows} rows loaded ({rewriter.chars_out} chars streamed)")
        return rows

    def run_job(self, job: LoadJob) -> int:
        return self.load(job.source, job.table, job.columns, job.delimiter)


def run_load_jobs(loader: BulkLoader, jobs: Sequence[LoadJob]) -> LoadSummary:
    """
    Run every job, then fail if any of them failed

    PostgreSQL carries one COPY at a time per connection, so the jobs run one
    after another over the shared connection. A failing job never prevents
    the remaining jobs from running.

    Returns:
        LoadSummary when every job succeeded

    Raises:
        LoadError: the first failed job's error, after all jobs have settled
    """
    summary = LoadSummary()

    for job in jobs:
        outcome = LoadOutcome(table=job.table)
        start = time.perf_counter()
        try:
            outcome.rows_loaded = loader.run_job(job)
        except LoadError as e:
            outcome.error = e
        outcome.elapsed_seconds = time.perf_counter() - start
        summary.outcomes.append(outcome)

    failures = summary.failures
    if failures:
        for failed in failures[1:]:
            logger.error(f"[load] Additional failure in {failed.table}: {failed.error}")
        raise failures[0].error

    return summary
