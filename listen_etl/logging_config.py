"""
Listen Analytics ETL - Logging Configuration
Coloured console logging on stderr, optional rotating log file.

Levels follow the run mode: verbose modes log every step boundary at INFO,
prod mode keeps stderr to warnings and errors so stdout carries only query
output. An explicit LOG_LEVEL wins over both.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional
import colorama

colorama.init()

CONSOLE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
FILE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s %(funcName)s:%(lineno)d: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Driver chatter stays out of step logs
QUIET_LOGGERS = ('psycopg2',)


class ColoredFormatter(logging.Formatter):
    """Colours the level name of console records"""

    COLORS = {
        'DEBUG': colorama.Fore.CYAN,
        'INFO': colorama.Fore.GREEN,
        'WARNING': colorama.Fore.YELLOW,
        'ERROR': colorama.Fore.RED,
        'CRITICAL': colorama.Fore.RED + colorama.Style.BRIGHT,
    }

    def format(self, record):
        # Copy so a file handler sharing the record keeps the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{record.levelname}{colorama.Style.RESET_ALL}"
        return super().format(record)


def setup_logging(
    settings=None,
    log_file: Optional[str] = None,
    log_level: Optional[str] = None,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure the root logger for a pipeline run

    Args:
        settings: Pipeline Settings; supplies the log file and the
            mode-dependent level unless given explicitly below
        log_file: Path of a rotating log file (console only when None)
        log_level: Level name; defaults to the settings' effective level,
            else INFO
        max_bytes: Log file size before rotation
        backup_count: Rotated files to keep

    Returns:
        Configured root logger
    """
    if settings is not None:
        log_file = log_file or settings.log_file
        log_level = log_level or settings.effective_log_level

    root = logging.getLogger()
    root.setLevel(getattr(logging, (log_level or 'INFO').upper()))
    root.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root
