"""Tests for the ZIP export pipeline in :mod:`etl.export_zip`."""

from __future__ import annotations

import io
import zipfile
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import SQLAlchemyError

import etl.export_zip as export_zip
from core.config import Settings
from core.errors import StorageError
from db.models import PriceRecord
from db.session import init_db
from etl.export_zip import (
    build_export_archive,
    format_price_row,
    iter_csv_chunks,
    stream_export_archive,
)


def read_entry(payload: bytes, name: str = "data.csv") -> str:
    with zipfile.ZipFile(io.BytesIO(payload)) as archive:
        assert archive.namelist() == [name]
        return archive.read(name).decode("utf-8")


@pytest.fixture
def stored_prices(session):
    session.add_all([
        PriceRecord(id=1, name="Widget", category="Tools", price=Decimal("9.99"), create_date=date(2024, 1, 15)),
        PriceRecord(id=2, name="Bread, rye", category="Food", price=Decimal("2.5"), create_date=date(2024, 2, 29)),
        PriceRecord(id=3, name="Chair", category="Furniture", price=Decimal("40"), create_date=date(2023, 12, 31)),
    ])
    session.commit()


EXPECTED_LINES = {
    "1,Widget,Tools,9.99,2024-01-15T00:00:00Z",
    '2,"Bread, rye",Food,2.50,2024-02-29T00:00:00Z',
    "3,Chair,Furniture,40.00,2023-12-31T00:00:00Z",
}


def test_format_price_row_uses_fixed_point_and_timestamp() -> None:
    row = SimpleNamespace(id=7, name="Widget", category="Tools", price=Decimal("3.5"), create_date=date(2024, 1, 15))

    assert format_price_row(row, "%Y-%m-%dT%H:%M:%SZ") == [
        "7", "Widget", "Tools", "3.50", "2024-01-15T00:00:00Z",
    ]


def test_empty_table_exports_empty_csv_entry(session, test_settings) -> None:
    payload = build_export_archive(session, test_settings)

    assert read_entry(payload) == ""


def test_export_writes_every_row_without_header(session, test_settings, stored_prices) -> None:
    content = read_entry(build_export_archive(session, test_settings))

    assert content.endswith("\n")
    assert set(content.splitlines()) == EXPECTED_LINES


def test_entry_name_follows_settings(session, stored_prices) -> None:
    settings = Settings(database_url="sqlite://", export_entry_name="prices.csv")

    content = read_entry(build_export_archive(session, settings), name="prices.csv")

    assert len(content.splitlines()) == 3


def test_csv_chunks_respect_chunk_size(session, stored_prices) -> None:
    settings = Settings(database_url="sqlite://", export_chunk_size=10, export_batch_size=1)

    chunks = list(iter_csv_chunks(session, settings))

    assert len(chunks) == 3
    assert set(b"".join(chunks).decode("utf-8").splitlines()) == EXPECTED_LINES


def test_streamed_archive_matches_buffered_content(database, session, test_settings, stored_prices) -> None:
    payload = b"".join(stream_export_archive(database, test_settings))

    assert set(read_entry(payload).splitlines()) == EXPECTED_LINES


def test_streamed_archive_for_empty_table(database, test_settings) -> None:
    payload = b"".join(stream_export_archive(database, test_settings))

    assert read_entry(payload) == ""


def test_read_failure_is_storage_error(session, test_settings, monkeypatch) -> None:
    def failing_execute(*args, **kwargs):
        raise SQLAlchemyError("relation does not exist")

    monkeypatch.setattr(session, "execute", failing_execute)

    with pytest.raises(StorageError, match="Failed to fetch data"):
        build_export_archive(session, test_settings)


def test_main_writes_archive_to_disk(tmp_path, monkeypatch) -> None:
    settings = Settings(database_url=f"sqlite:///{tmp_path / 'prices.db'}")
    database = export_zip.Database(settings.database_url)
    init_db(database)
    with database.session() as session:
        session.add(PriceRecord(id=1, name="Widget", category="Tools", price=Decimal("9.99"), create_date=date(2024, 1, 15)))
        session.commit()
    database.close()
    monkeypatch.setattr(export_zip, "default_settings", settings)
    output_path = tmp_path / "response.zip"

    written = export_zip.main(str(output_path))

    assert written == output_path.stat().st_size
    assert read_entry(output_path.read_bytes()) == "1,Widget,Tools,9.99,2024-01-15T00:00:00Z\n"
