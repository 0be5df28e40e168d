# WORKFLOW: Bootstrap script for database setup and initial data loading.
# Used by: Initial setup, deployment, development setup
# Functions:
# 1. setup_database() - Create the prices table if it is missing
# 2. check_raw_data() - Find ZIP archives waiting in the raw data directory
# 3. load_raw_data() - Import each archive through the import pipeline
# 4. validate_setup() - Verify the database answers and the table exists
#
# Bootstrap flow: Database setup -> Raw ZIP archives -> Import -> Validation -> Ready

"""
Bootstrap script for Price Archive API setup and data loading.
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from sqlalchemy import inspect

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.config import settings  # noqa: E402
from core.errors import PricesError  # noqa: E402
from db.session import Database, check_db_connection, init_db  # noqa: E402
from etl.ingest_zip import import_prices  # noqa: E402

logger = logging.getLogger(__name__)


def setup_database(database: Database) -> None:
    """
    Initialize database schema and create tables.
    """
    logger.info("Setting up database schema")
    init_db(database)
    logger.info("Database setup completed")


def check_raw_data(raw_dir: Path) -> List[Path]:
    """
    Check for ZIP archives in the raw data directory.

    Returns:
        Sorted list of archive paths
    """
    if not raw_dir.exists():
        logger.warning(f"{raw_dir} does not exist")
        return []

    raw_files = sorted(raw_dir.glob("*.zip"))
    if not raw_files:
        logger.warning(f"No ZIP archives found in {raw_dir}")
        return []

    logger.info(f"Found {len(raw_files)} raw data files:")
    for file in raw_files:
        logger.info(f"  - {file.name}")
    return raw_files


def load_raw_data(database: Database, raw_files: List[Path]) -> int:
    """
    Import every archive, each in its own transaction.

    Returns:
        Number of archives that failed to import
    """
    failures = 0
    for path in raw_files:
        try:
            with database.session() as session:
                totals = import_prices(session, path.read_bytes(), settings)
            logger.info(
                f"Imported {path.name}: {totals.total_items} items, "
                f"{totals.total_categories} categories, total price {totals.total_price:.2f}"
            )
        except PricesError as e:
            logger.error(f"Failed to import {path.name}: {e.message}")
            failures += 1
    return failures


def validate_setup(database: Database) -> bool:
    """
    Validate that the database is reachable and the prices table exists.
    """
    if not check_db_connection(database):
        logger.error("Database connection failed")
        return False

    if not inspect(database.engine).has_table("prices"):
        logger.error("Table 'prices' is missing")
        return False

    logger.info("Setup validation passed")
    return True


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main bootstrap function.
    """
    parser = argparse.ArgumentParser(description='Bootstrap the Price Archive API database')
    parser.add_argument('--database-url', default=settings.database_url, help='Database URL')
    parser.add_argument('--raw-dir', default='data/raw', help='Directory holding ZIP archives to import')
    parser.add_argument('--validate-only', action='store_true', help='Only validate existing setup')

    args = parser.parse_args(argv)

    database = Database(args.database_url)
    try:
        logger.info("Starting Price Archive API bootstrap")

        if args.validate_only:
            return 0 if validate_setup(database) else 1

        setup_database(database)

        raw_files = check_raw_data(Path(args.raw_dir))
        if raw_files and load_raw_data(database, raw_files):
            logger.error("Some archives failed to import")
            return 1

        if not validate_setup(database):
            logger.error("Setup validation failed")
            return 1

        logger.info("Bootstrap completed successfully!")
        return 0

    except PricesError as e:
        logger.error(f"Bootstrap failed: {e.message}")
        return 1
    finally:
        database.close()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    sys.exit(main())
