"""
Listen Analytics ETL - Ingestion Module
Delimiter rewrite and COPY-based bulk loading of the raw dumps
"""

from .delimiter_rewriter import (
    rewrite_chunks,
    DelimiterRewriter
)
from .bulk_loader import (
    LoadJob,
    LoadOutcome,
    LoadSummary,
    BulkLoader,
    build_copy_sql,
    run_load_jobs
)

__all__ = [
    'rewrite_chunks',
    'DelimiterRewriter',
    'LoadJob',
    'LoadOutcome',
    'LoadSummary',
    'BulkLoader',
    'build_copy_sql',
    'run_load_jobs'
]
