# WORKFLOW: Export of stored prices as a ZIP-wrapped CSV file.
# Used by: GET /api/v0/prices, offline export (python -m etl.export_zip)
# Functions:
# 1. format_price_row() - Stored record -> CSV fields
# 2. iter_csv_chunks() - Batched table read -> encoded CSV chunks
# 3. build_export_archive() - Buffered mode, whole archive in memory
# 4. stream_export_archive() - Streaming mode, archive bytes as they are produced
#
# Export flow: prices table -> CSV rows (no header) -> data.csv entry -> ZIP -> response body
# Buffered mode fails before any byte is sent. Streaming mode may leave a
# truncated archive on the client if a failure happens mid-transfer.

"""
Export of stored prices as a ZIP-wrapped CSV file.
"""

import csv
import io
import logging
import zipfile
from datetime import datetime, time
from pathlib import Path
from typing import Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import Settings, settings as default_settings
from core.errors import SerializationError, StorageError
from db.models import PriceRecord
from db.session import Database

logger = logging.getLogger(__name__)


class ArchiveChunkSink(io.RawIOBase):
    """Write-only, unseekable buffer that hands out whatever was written since the last drain."""

    def __init__(self):
        super().__init__()
        self._chunks: List[bytes] = []

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        self._chunks.append(bytes(b))
        return len(b)

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


def format_price_row(row, timestamp_format: str) -> List[str]:
    """
    Format one stored record as CSV fields.

    The price is fixed-point with two decimals and the date is rendered as
    midnight UTC in ``timestamp_format``.
    """
    created_at = datetime.combine(row.create_date, time.min)
    return [
        str(row.id),
        row.name,
        row.category,
        f"{row.price:.2f}",
        created_at.strftime(timestamp_format),
    ]


def iter_csv_chunks(session: Session, settings: Optional[Settings] = None) -> Iterator[bytes]:
    """
    Read the whole prices table and yield it as encoded CSV chunks.

    Rows come back in whatever order the database returns them.
    """
    settings = settings or default_settings
    statement = select(
        PriceRecord.id,
        PriceRecord.name,
        PriceRecord.category,
        PriceRecord.price,
        PriceRecord.create_date,
    ).execution_options(yield_per=settings.export_batch_size)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    try:
        result = session.execute(statement)
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch data: {e}")
        raise StorageError("Failed to fetch data") from e

    count = 0
    rows = iter(result)
    try:
        while True:
            try:
                row = next(rows, None)
            except SQLAlchemyError as e:
                logger.error(f"Failed to read data from DB: {e}")
                raise StorageError("Failed to read data from DB") from e
            if row is None:
                break

            try:
                writer.writerow(format_price_row(row, settings.export_timestamp_format))
            except (csv.Error, TypeError, ValueError) as e:
                logger.error(f"Failed to write record {row.id} to CSV: {e}")
                raise SerializationError("Failed to write CSV") from e
            count += 1

            if buffer.tell() >= settings.export_chunk_size:
                yield buffer.getvalue().encode("utf-8")
                buffer.seek(0)
                buffer.truncate(0)
    finally:
        result.close()

    if buffer.tell():
        yield buffer.getvalue().encode("utf-8")
    logger.info(f"Serialized {count} price records to CSV")


def build_export_archive(session: Session, settings: Optional[Settings] = None) -> bytes:
    """
    Build the complete export archive in memory.

    Args:
        session: Database session used for the read
        settings: Export settings, defaults to the process settings

    Returns:
        ZIP archive bytes holding a single CSV entry
    """
    settings = settings or default_settings
    output = io.BytesIO()

    try:
        with zipfile.ZipFile(output, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            with archive.open(settings.export_entry_name, "w") as entry:
                for chunk in iter_csv_chunks(session, settings):
                    entry.write(chunk)
    except (OSError, zipfile.LargeZipFile) as e:
        logger.error(f"Failed to write zip archive: {e}")
        raise SerializationError("Failed to write zip archive") from e

    return output.getvalue()


def stream_export_archive(database: Database, settings: Optional[Settings] = None) -> Iterator[bytes]:
    """
    Yield the export archive piece by piece while rows are read.

    Opens its own session, so the generator can outlive the request handler.
    A failure raised here after the first chunk reaches the client leaves a
    truncated archive behind.
    """
    settings = settings or default_settings
    sink = ArchiveChunkSink()

    try:
        with database.session() as session:
            with zipfile.ZipFile(sink, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                with archive.open(settings.export_entry_name, "w") as entry:
                    for chunk in iter_csv_chunks(session, settings):
                        entry.write(chunk)
                        data = sink.drain()
                        if data:
                            yield data
    except (OSError, zipfile.LargeZipFile) as e:
        logger.error(f"Failed to stream zip archive: {e}")
        raise SerializationError("Failed to copy data to zip") from e
    except (StorageError, SerializationError) as e:
        logger.error(f"Export aborted mid-stream, client receives a truncated archive: {e.message}")
        raise

    yield sink.drain()


def main(output_path: str) -> int:
    """
    Export the configured database to a ZIP file on disk.

    Args:
        output_path: Destination path for the archive

    Returns:
        Number of bytes written
    """
    database = Database(default_settings.database_url, echo=default_settings.database_echo)
    try:
        with database.session() as session:
            payload = build_export_archive(session, default_settings)
        Path(output_path).write_bytes(payload)
        logger.info(f"Exported prices to {output_path} ({len(payload)} bytes)")
        return len(payload)
    finally:
        database.close()


if __name__ == "__main__":
    import sys

    if len(sys.argv) != 2:
        print("Usage: python -m etl.export_zip <output_path>")
        sys.exit(1)

    logging.basicConfig(level=getattr(logging, default_settings.log_level))
    main(sys.argv[1])
