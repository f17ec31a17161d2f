"""
Listen Analytics ETL - Result Presentation
Renders QueryResults as a table (verbose modes) or one line per row (prod)
"""

import sys
from typing import IO, Optional

import pandas as pd

from .analytics.queries import QueryResult


def _cell(value) -> str:
    return '' if value is None else str(value)


def render_machine(result: QueryResult) -> str:
    """One line per row, values separated by single spaces"""
    return '\n'.join(' '.join(_cell(v) for v in row) for row in result.rows)


def render_table(result: QueryResult) -> str:
    """Titled, aligned table"""
    title = f"== {result.name} ({result.row_count} rows) =="
    if not result.rows:
        return f"{title}\n(no rows)"
    frame = pd.DataFrame.from_records(result.rows, columns=result.columns)
    return f"{title}\n{frame.to_string(index=False)}"


def render(result: QueryResult, mode: str) -> str:
    if mode == 'prod':
        return render_machine(result)
    return render_table(result)


class ResultPrinter:
    """Writes rendered results to a stream (stdout by default)"""

    def __init__(self, mode: str, stream: Optional[IO[str]] = None):
        self.mode = mode
        self.stream = stream

    def show(self, result: QueryResult) -> QueryResult:
        stream = self.stream if self.stream is not None else sys.stdout
        text = render(result, self.mode)
        if text:
            stream.write(text + '\n')
        if self.mode != 'prod':
            stream.write('\n')
        stream.flush()
        return result
