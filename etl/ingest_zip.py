# WORKFLOW: ZIP file ingestion for uploaded price CSV archives.
# Used by: POST /api/v0/prices, offline import (python -m etl.ingest_zip)
# Functions:
# 1. open_archive() - Open the uploaded bytes as a ZIP archive
# 2. read_entry_rows() - Read one CSV entry, skip its header, validate rows
# 3. compute_totals() - Aggregate count/categories/price over the whole table
# 4. import_prices() - Run the whole import inside one transaction
#
# Ingestion flow: ZIP bytes -> Entries -> CSV rows -> Validate -> Bulk insert -> Totals -> Commit
# Any failure rolls back the transaction, so an upload is stored completely or not at all.

"""
ZIP file ingestion for uploaded price CSV archives.
"""

import csv
import io
import json
import logging
import struct
import zipfile
import zlib
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import Settings, settings as default_settings
from core.errors import ArchiveEntryError, ClientInputError, PricesError, StorageError
from db.models import PriceRecord
from db.session import Database, init_db
from etl.validators import parse_price_row

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableTotals:
    """Aggregates over the whole prices table."""
    total_items: int
    total_categories: int
    total_price: float


def open_archive(data: bytes) -> zipfile.ZipFile:
    """
    Open uploaded bytes as a ZIP archive.

    Args:
        data: Raw upload body

    Returns:
        Open ZipFile; the caller closes it
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, NotImplementedError, ValueError, OSError, EOFError, struct.error) as e:
        logger.error(f"Error reading ZIP archive: {e}")
        raise ClientInputError("Failed to read zip archive")

    logger.info(f"ZIP archive opened successfully with {len(archive.infolist())} entries")
    return archive


def _read_entry_text(archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> str:
    try:
        raw = archive.read(info)
    except (zipfile.BadZipFile, RuntimeError, NotImplementedError, zlib.error, OSError) as e:
        logger.error(f"Error reading file {info.filename} in ZIP: {e}")
        raise ArchiveEntryError(f"Failed to read file in zip: {info.filename}")

    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ClientInputError(f"File {info.filename} is not valid UTF-8 text")


def read_entry_rows(archive: zipfile.ZipFile, info: zipfile.ZipInfo, date_format: str) -> List[Dict[str, Any]]:
    """
    Read one CSV entry and validate its data rows.

    The first row is a header and is skipped. An entry without a readable
    header aborts the import.

    Args:
        archive: Open upload archive
        info: Entry to read
        date_format: strptime format for the date column

    Returns:
        Insert mappings for every data row of the entry
    """
    reader = csv.reader(io.StringIO(_read_entry_text(archive, info), newline=""))

    try:
        header = next(reader, None)
    except csv.Error as e:
        logger.error(f"Error reading header row of {info.filename}: {e}")
        raise ArchiveEntryError(f"Failed to read header row: {info.filename}")
    if header is None:
        logger.error(f"Error reading header row of {info.filename}: entry is empty")
        raise ArchiveEntryError(f"Failed to read header row: {info.filename}")
    logger.debug(f"Header row of {info.filename}: {header}")

    rows = []
    try:
        for row in reader:
            if not row:
                continue
            try:
                rows.append(parse_price_row(row, date_format))
            except ClientInputError as e:
                raise ClientInputError(f"{info.filename}, line {reader.line_num}: {e.message}")
    except csv.Error as e:
        logger.error(f"Error reading CSV row in {info.filename}: {e}")
        raise ClientInputError(f"Failed to read CSV row in {info.filename}: {e}")

    return rows


def compute_totals(session: Session) -> TableTotals:
    """
    Aggregate record count, distinct categories and price sum over the whole table.
    """
    total_items, total_categories, total_price = session.execute(
        select(
            func.count(PriceRecord.id),
            func.count(func.distinct(PriceRecord.category)),
            func.coalesce(func.sum(PriceRecord.price), 0),
        )
    ).one()

    return TableTotals(
        total_items=total_items,
        total_categories=total_categories,
        total_price=float(total_price),
    )


def import_prices(session: Session, data: bytes, settings: Optional[Settings] = None) -> TableTotals:
    """
    Import every CSV entry of a ZIP archive in one transaction.

    Args:
        session: Database session; its transaction is committed or rolled back here
        data: Raw ZIP bytes
        settings: Import settings, defaults to the process settings

    Returns:
        Totals over the whole prices table, read before commit
    """
    settings = settings or default_settings

    with open_archive(data) as archive:
        try:
            inserted = 0
            for info in archive.infolist():
                if info.is_dir():
                    continue
                logger.info(f"Processing file inside ZIP: {info.filename}")
                rows = read_entry_rows(archive, info, settings.import_date_format)
                if rows:
                    session.execute(insert(PriceRecord), rows)
                    inserted += len(rows)
                logger.info(f"Inserted {len(rows)} rows from {info.filename}")

            totals = compute_totals(session)
        except PricesError:
            logger.warning("Rolling back transaction due to an error")
            session.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error inserting data into prices table: {e}")
            session.rollback()
            raise StorageError("Failed to insert data") from e

    try:
        session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Error committing transaction: {e}")
        session.rollback()
        raise StorageError("Failed to commit transaction") from e

    logger.info(
        f"Imported {inserted} rows; table now holds {totals.total_items} items "
        f"in {totals.total_categories} categories"
    )
    return totals


def main(zip_file_path: str) -> TableTotals:
    """
    Import a ZIP archive from disk into the configured database.

    Args:
        zip_file_path: Path to the ZIP file of price CSVs
    """
    database = Database(default_settings.database_url, echo=default_settings.database_echo)
    try:
        init_db(database)
        data = Path(zip_file_path).read_bytes()
        with database.session() as session:
            totals = import_prices(session, data, default_settings)
        logger.info(f"Successfully imported {zip_file_path}")
        return totals
    finally:
        database.close()


if __name__ == "__main__":
    import sys

    if len(sys.argv) != 2:
        print("Usage: python -m etl.ingest_zip <zip_file_path>")
        sys.exit(1)

    logging.basicConfig(level=getattr(logging, default_settings.log_level))
    print(json.dumps(asdict(main(sys.argv[1]))))
