"""
Shared fixtures: an in-memory stand-in for DatabaseManager
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

import psycopg2
import psycopg2.errors
import pytest

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from listen_etl.exceptions import ConnectionClosedError


class FakeDatabaseManager:
    """
    Records statements and COPY payloads instead of talking to PostgreSQL

    Args:
        fail_on: substring -> exception; any executed statement containing the
            substring raises that exception
        copy_fields: expected field count per COPY call, in call order; a row
            with a different count raises psycopg2.DataError like the server
        delimiter: field separator used for the copy_fields check
        query_results: substring -> (columns, rows) for fetch_with_columns
    """

    def __init__(
        self,
        fail_on: Optional[Dict[str, Exception]] = None,
        copy_fields: Optional[List[int]] = None,
        delimiter: str = ',',
        query_results: Optional[Dict[str, tuple]] = None
    ):
        self.fail_on = fail_on or {}
        self.copy_fields = list(copy_fields or [])
        self.delimiter = delimiter
        self.query_results = query_results or {}
        self.statements: List[tuple] = []
        self.copies: List[str] = []
        self.closed = False
        self.close_calls = 0

    def _check_open(self):
        if self.closed:
            raise ConnectionClosedError("Database connection has been closed")

    def execute(self, query, params=None):
        self._check_open()
        self.statements.append((query, params))
        for needle, error in self.fail_on.items():
            if needle in query:
                raise error
        return 0

    def fetch_with_columns(self, query, params=None):
        self._check_open()
        self.statements.append((query, params))
        for needle, result in self.query_results.items():
            if needle in query:
                return result
        return ['value'], []

    def copy_from_stream(self, copy_sql, stream, size=8192):
        self._check_open()
        parts = []
        while True:
            data = stream.read(size)
            if not data:
                break
            parts.append(data)
        payload = ''.join(parts)
        self.copies.append(payload)

        expected = self.copy_fields[len(self.copies) - 1] if len(self.copies) <= len(self.copy_fields) else None
        rows = [line for line in payload.split('\n') if line]
        if expected is not None:
            for number, row in enumerate(rows, 1):
                if len(row.split(self.delimiter)) != expected:
                    raise psycopg2.DataError(f"line {number}: wrong number of fields")
        return len(rows)

    def close(self):
        self.close_calls += 1
        self.closed = True

    def executed(self, needle: str) -> bool:
        return any(needle in query for query, _ in self.statements)


class CatalogFakeDatabaseManager(FakeDatabaseManager):
    """
    FakeDatabaseManager that also tracks which tables exist

    DROP TABLE IF EXISTS removes a table, CREATE TABLE raises DuplicateTable
    when the table is still there. Values are row counts.
    """

    def __init__(self, tables: Optional[Dict[str, int]] = None, **kwargs):
        super().__init__(**kwargs)
        self.tables = dict(tables or {})

    def execute(self, query, params=None):
        super().execute(query, params)
        words = query.split()
        if query.startswith('DROP TABLE IF EXISTS'):
            self.tables.pop(words[4], None)
        elif query.startswith('CREATE TABLE'):
            if words[2] in self.tables:
                raise psycopg2.errors.DuplicateTable(f'relation "{words[2]}" already exists')
            self.tables[words[2]] = 0
        return 0


@pytest.fixture
def fake_db():
    return FakeDatabaseManager()
