"""
Listen Analytics ETL - Database Utilities
Single shared PostgreSQL connection with an explicit connect/close lifecycle,
COPY streaming and query helpers
"""

import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List, Mapping, IO
from contextlib import contextmanager
import psycopg2
from psycopg2 import extras

from .exceptions import ConfigError, ConnectionClosedError

logger = logging.getLogger(__name__)

# Environment keys and the connection parameter each one sets
ENV_KEYS = {
    'DB_HOST': 'host',
    'DB_PORT': 'port',
    'DB_USER': 'user',
    'DB_PASSWORD': 'password',
    'DB_NAME': 'database',
}

DEFAULTS = {
    'host': 'localhost',
    'port': 5432,
}


class DatabaseConfig:
    """
    Database configuration loader

    Values come from an optional YAML file (``database:`` section) and are
    overridden by DB_* environment variables.
    """

    def __init__(self, config_path: Optional[str] = None, env: Optional[Mapping[str, str]] = None):
        self.config_path = Path(config_path) if config_path else None
        self.config = self._load_config(env if env is not None else os.environ)

    def _load_config(self, env: Mapping[str, str]) -> Dict[str, Any]:
        """Merge defaults, YAML and environment"""
        config: Dict[str, Any] = dict(DEFAULTS)

        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Config file not found: {self.config_path}")

            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}

            config.update(loaded.get('database') or {})

        for env_key, param in ENV_KEYS.items():
            if env.get(env_key):
                config[param] = env[env_key]

        try:
            config['port'] = int(config['port'])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid database port: {config.get('port')!r}") from e

        return config

    def get_psycopg2_params(self) -> Dict[str, Any]:
        """Get parameters for psycopg2 connection"""
        missing = [key for key in ('user', 'database') if not self.config.get(key)]
        if missing:
            raise ConfigError(f"Missing required database config keys: {missing}")

        return {
            'host': self.config['host'],
            'port': self.config['port'],
            'database': self.config['database'],
            'user': self.config['user'],
            'password': self.config.get('password'),
        }


class DatabaseManager:
    """
    Owns the one connection the pipeline uses for its whole lifetime

    The connection runs in autocommit mode: each statement (including a COPY)
    is its own transaction, so a rejected statement leaves the connection
    usable for the next one. After close() every operation raises
    ConnectionClosedError.
    """

    def __init__(self, config: Optional[DatabaseConfig] = None, connection=None):
        self.config = config
        self._conn = connection
        self._closed = False

    @classmethod
    def from_config(cls, config_path: Optional[str] = None) -> 'DatabaseManager':
        return cls(DatabaseConfig(config_path))

    @property
    def connection(self):
        """The live connection; connects lazily on first use"""
        if self._closed:
            raise ConnectionClosedError("Database connection has been closed")
        if self._conn is None:
            self.connect()
        return self._conn

    @property
    def closed(self) -> bool:
        return self._closed

    def connect(self) -> None:
        """Open the connection (no-op if already open)"""
        if self._closed:
            raise ConnectionClosedError("Database connection has been closed")
        if self._conn is not None:
            return
        if self.config is None:
            raise ConfigError("No database configuration supplied")

        params = self.config.get_psycopg2_params()
        self._conn = psycopg2.connect(**params)
        self._conn.autocommit = True
        logger.info(f"Connected to {params['database']} at {params['host']}:{params['port']}")

    @contextmanager
    def cursor(self, cursor_factory=None):
        """Context manager for a cursor on the shared connection"""
        cur = self.connection.cursor(cursor_factory=cursor_factory)
        try:
            yield cur
        finally:
            cur.close()

    def execute(self, query: str, params: Optional[tuple] = None) -> int:
        """Execute a statement that returns no rows; returns rowcount"""
        with self.cursor() as cur:
            cur.execute(query, params)
            return cur.rowcount

    def fetch_all(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute SELECT query and return rows as dicts"""
        with self.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(query, params)
            return [dict(row) for row in cur.fetchall()]

    def fetch_with_columns(self, query: str, params: Optional[tuple] = None):
        """Execute SELECT query; returns (column names, list of row tuples)"""
        with self.cursor() as cur:
            cur.execute(query, params)
            columns = [desc[0] for desc in cur.description]
            return columns, cur.fetchall()

    def copy_from_stream(self, copy_sql, stream: IO[str], size: int = 8192) -> int:
        """
        Stream a file-like object into COPY ... FROM STDIN

        Args:
            copy_sql: COPY statement (str or psycopg2.sql.Composable)
            stream: Object with read(size); consumed until it returns ''
            size: Read size requested by the driver

        Returns:
            Number of rows the server reports as copied
        """
        with self.cursor() as cur:
            cur.copy_expert(copy_sql, stream, size=size)
            return cur.rowcount

    def close(self) -> None:
        """Close the connection; safe to call more than once"""
        if self._closed:
            return
        self._closed = True
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Database connection closed")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
