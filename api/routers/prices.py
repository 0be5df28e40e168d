# WORKFLOW: Price archive endpoints for uploading and downloading priced items.
# Used by: Direct API calls, integration testing
# Endpoints:
# 1. POST /prices - Import a ZIP of CSV files, answer with table totals
# 2. GET /prices - Export the whole table as data.csv inside response.zip
#
# Request flow: HTTP request -> Pipeline (etl/) -> PricesError mapping -> Response
# Handlers are plain functions so FastAPI runs them on its thread pool.

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from fastapi.responses import Response, StreamingResponse
from sqlalchemy.orm import Session
from typing import Optional
import logging
from dataclasses import asdict

from api.schemas.response import PriceTotals
from core.config import Settings
from core.errors import PricesError
from db.session import Database, get_database, get_db
from etl.export_zip import build_export_archive, stream_export_archive
from etl.ingest_zip import import_prices

logger = logging.getLogger(__name__)

router = APIRouter(tags=["prices"])


def get_settings(request: Request) -> Settings:
    """Dependency returning the settings the app was built with."""
    return request.app.state.settings


@router.post("/prices", response_model=PriceTotals)
def upload_prices(
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Import a ZIP archive of price CSV files.

    Every entry is loaded inside one transaction: either all rows are stored
    or none are. The response carries totals over the whole table.
    """
    if file is None:
        logger.error("Error reading file from form: field 'file' is missing")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to read file")

    try:
        data = file.file.read()
    finally:
        file.file.close()
    logger.info(f"Successfully received file: {file.filename} ({len(data)} bytes)")

    try:
        totals = import_prices(db, data, settings)
    except PricesError as e:
        logger.error(f"Price import failed: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return PriceTotals(**asdict(totals))


@router.get(
    "/prices",
    response_class=Response,
    responses={200: {"content": {"application/zip": {}}, "description": "ZIP archive holding data.csv"}},
)
def download_prices(
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_settings),
):
    """
    Export every stored price as ``data.csv`` inside a ZIP archive.

    Buffered mode builds the archive before sending headers; streaming mode
    sends it while reading and can only fail by truncating the body.
    """
    headers = {"Content-Disposition": f"attachment; filename={settings.export_archive_name}"}

    if not settings.export_buffered:
        logger.info("Streaming price export")
        return StreamingResponse(
            stream_export_archive(database, settings),
            media_type="application/zip",
            headers=headers,
        )

    try:
        with database.session() as session:
            payload = build_export_archive(session, settings)
    except PricesError as e:
        logger.error(f"Price export failed: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    logger.info(f"Price export built ({len(payload)} bytes)")
    return Response(content=payload, media_type="application/zip", headers=headers)
