"""
Listen Analytics ETL - Pipeline Runner
Reset schema, bulk load both dumps, build indexes, run the analytics, close.

Usage:
    python scripts/run_pipeline.py

    Or with explicit inputs:
    python scripts/run_pipeline.py --tracks data/tracks.txt --activities data/listen_activities.txt --mode dev
"""

import sys
import argparse
import logging
from pathlib import Path
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from listen_etl.config import Settings
from listen_etl.db_utils import DatabaseConfig, DatabaseManager
from listen_etl.exceptions import ListenETLError
from listen_etl.logging_config import setup_logging
from listen_etl.pipeline import ListenPipeline


def main(argv=None):
    """Run the fixed task sequence; returns the process exit code"""

    parser = argparse.ArgumentParser(description='Listen Analytics bulk load and analytics')
    parser.add_argument(
        '--config',
        default=None,
        help='Optional database config YAML (DB_* environment variables override it)'
    )
    parser.add_argument('--tracks', default=None, help='Tracks dump (overrides TRACKS_FILE)')
    parser.add_argument('--activities', default=None, help='Listen activities dump (overrides ACTIVITIES_FILE)')
    parser.add_argument('--mode', default=None, help="'prod' for one-line output, anything else for tables")
    parser.add_argument('--log-file', default=None, help='Rotating log file (overrides LOG_FILE)')

    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env(overrides={
            'tracks_file': args.tracks,
            'activities_file': args.activities,
            'mode': args.mode,
            'log_file': args.log_file,
        })
    except ListenETLError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    setup_logging(settings)
    logger = logging.getLogger(__name__)

    start_time = datetime.now()
    logger.info("=" * 80)
    logger.info("Listen Analytics ETL - Pipeline Started")
    logger.info(f"Start time: {start_time.strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info(f"Tracks: {settings.tracks_file}  Activities: {settings.activities_file}")
    logger.info("=" * 80)

    try:
        db_manager = DatabaseManager(DatabaseConfig(args.config))
        db_manager.connect()
        ListenPipeline(db_manager, settings).run()
    except (ListenETLError, FileNotFoundError) as e:
        logger.error(f"✗ Pipeline failed: {e}", exc_info=not settings.is_prod)
        return 1
    except Exception as e:
        logger.error(f"FATAL ERROR: {e}", exc_info=True)
        return 1

    duration = (datetime.now() - start_time).total_seconds()
    logger.info("=" * 80)
    logger.info(f"✓ Pipeline completed in {duration:.2f} seconds")
    logger.info("=" * 80)
    return 0


if __name__ == "__main__":
    sys.exit(main())
