"""
Listen Analytics ETL - Runtime Settings
Environment-style configuration (optionally from a .env file) for the
delimiter rewrite, run mode, input files and logging.

Keys:
    FILE_SEPARATOR            sentinel token in the raw files (default '<SEP>')
    REPLACED_FILE_SEPARATOR   delimiter declared to COPY (default ',')
    MODE                      'prod' prints one-line results; anything else is verbose
    TRACKS_FILE / ACTIVITIES_FILE
    CHUNK_SIZE                characters read per rewrite chunk
    LOG_LEVEL / LOG_FILE
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from .exceptions import ConfigError

DEFAULT_SENTINEL = '<SEP>'
DEFAULT_REPLACEMENT = ','
DEFAULT_MODE = 'prod'
DEFAULT_CHUNK_SIZE = 65536
DEFAULT_TRACKS_FILE = 'data/tracks.txt'
DEFAULT_ACTIVITIES_FILE = 'data/listen_activities.txt'

# Characters that COPY's text format reserves for row and escape handling
FORBIDDEN_DELIMITERS = ('\n', '\r', '\\')


def validate_copy_delimiter(delimiter: str) -> str:
    """Check that a delimiter is usable by COPY ... WITH (DELIMITER ...)"""
    if not isinstance(delimiter, str) or len(delimiter) != 1:
        raise ValueError(f"COPY delimiter must be a single character, got {delimiter!r}")
    if delimiter in FORBIDDEN_DELIMITERS:
        raise ValueError(f"COPY delimiter cannot be {delimiter!r}")
    return delimiter


def validate_rewrite_tokens(sentinel: str, replacement: str) -> None:
    """
    Check a sentinel/replacement pair for the delimiter rewrite

    The replacement must not occur inside the sentinel, so that rewritten
    output can never contain a sentinel (or part of one) the rewrite produced.
    """
    if not sentinel:
        raise ValueError("sentinel must be a non-empty string")
    if replacement in sentinel:
        raise ValueError(f"replacement {replacement!r} must not occur inside sentinel {sentinel!r}")


@dataclass
class Settings:
    """Validated pipeline settings"""
    sentinel: str = DEFAULT_SENTINEL
    replacement: str = DEFAULT_REPLACEMENT
    mode: str = DEFAULT_MODE
    tracks_file: Path = Path(DEFAULT_TRACKS_FILE)
    activities_file: Path = Path(DEFAULT_ACTIVITIES_FILE)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    log_level: Optional[str] = None
    log_file: Optional[str] = None

    def __post_init__(self):
        self.tracks_file = Path(self.tracks_file)
        self.activities_file = Path(self.activities_file)

        try:
            validate_copy_delimiter(self.replacement)
        except ValueError as e:
            raise ConfigError(f"REPLACED_FILE_SEPARATOR is invalid: {e}") from e
        try:
            validate_rewrite_tokens(self.sentinel, self.replacement)
        except ValueError as e:
            raise ConfigError(f"FILE_SEPARATOR / REPLACED_FILE_SEPARATOR: {e}") from e
        if self.chunk_size <= 0:
            raise ConfigError(f"CHUNK_SIZE must be positive, got {self.chunk_size}")

    @property
    def is_prod(self) -> bool:
        return self.mode == 'prod'

    @property
    def effective_log_level(self) -> str:
        """Explicit LOG_LEVEL wins; otherwise prod stays quiet"""
        if self.log_level:
            return self.log_level
        return 'WARNING' if self.is_prod else 'INFO'

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        overrides: Optional[Dict[str, Any]] = None,
        dotenv_path: Optional[str] = None
    ) -> 'Settings':
        """
        Build settings from environment variables

        Args:
            env: Mapping to read instead of os.environ (no .env loading when given)
            overrides: Non-None values replace what the environment provides
            dotenv_path: Explicit .env file; default search when None

        Returns:
            Settings instance
        """
        if env is None:
            load_dotenv(dotenv_path)
            env = os.environ

        # FILE_SEPATATOR is the legacy spelling still found in older .env files
        sentinel = env.get('FILE_SEPARATOR') or env.get('FILE_SEPATATOR') or DEFAULT_SENTINEL

        chunk_raw = env.get('CHUNK_SIZE', str(DEFAULT_CHUNK_SIZE))
        try:
            chunk_size = int(chunk_raw)
        except ValueError as e:
            raise ConfigError(f"CHUNK_SIZE must be an integer, got {chunk_raw!r}") from e

        values: Dict[str, Any] = {
            'sentinel': sentinel,
            'replacement': env.get('REPLACED_FILE_SEPARATOR', DEFAULT_REPLACEMENT),
            'mode': env.get('MODE', DEFAULT_MODE),
            'tracks_file': env.get('TRACKS_FILE', DEFAULT_TRACKS_FILE),
            'activities_file': env.get('ACTIVITIES_FILE', DEFAULT_ACTIVITIES_FILE),
            'chunk_size': chunk_size,
            'log_level': env.get('LOG_LEVEL') or None,
            'log_file': env.get('LOG_FILE') or None,
        }

        for key, value in (overrides or {}).items():
            if value is not None:
                values[key] = value

        return cls(**values)
