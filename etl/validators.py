# WORKFLOW: Row validation and type coercion for uploaded price CSV files.
# Used by: Import pipeline (etl/ingest_zip.py)
# Functions:
# 1. parse_price_id() - Integer identifier, column 0
# 2. parse_price() - Non-negative decimal amount, column 3
# 3. parse_create_date() - Calendar date in the configured format, column 4
# 4. parse_price_row() - Whole row -> insertable mapping
#
# Validation flow: CSV row -> Field count check -> Per-column coercion -> Insert mapping
# Any malformed field raises ClientInputError, which rejects the whole upload.

"""
Row validation and type coercion for uploaded price CSV files.
"""

import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from core.errors import ClientInputError

logger = logging.getLogger(__name__)

PRICE_COLUMNS = ("id", "name", "category", "price", "create_date")

BIGINT_MIN = -(2 ** 63)
BIGINT_MAX = 2 ** 63 - 1

_ID_PATTERN = re.compile(r'^[+-]?\d+$')
_PRICE_PATTERN = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')

# Fits the NUMERIC(12,2) price column exactly: whole cents, at most 10 integer digits.
PRICE_SCALE = Decimal("0.01")
PRICE_LIMIT = Decimal(10) ** 10


def parse_price_id(value: str) -> int:
    """
    Parse the integer identifier column.

    Args:
        value: Raw CSV field

    Returns:
        Parsed identifier
    """
    if not _ID_PATTERN.match(value):
        raise ClientInputError(f"Invalid ID value: {value!r}")

    parsed = int(value)
    if not BIGINT_MIN <= parsed <= BIGINT_MAX:
        raise ClientInputError(f"Invalid ID value: {value!r} is out of range")
    return parsed


def parse_price(value: str) -> Decimal:
    """
    Parse the price column into a non-negative Decimal.

    Args:
        value: Raw CSV field

    Returns:
        Parsed price
    """
    if not _PRICE_PATTERN.match(value):
        raise ClientInputError(f"Invalid price value: {value!r}")

    try:
        parsed = Decimal(value)
    except InvalidOperation:
        raise ClientInputError(f"Invalid price value: {value!r}")

    if parsed < 0:
        raise ClientInputError(f"Invalid price value: {value!r} is negative")
    if parsed >= PRICE_LIMIT:
        raise ClientInputError(f"Invalid price value: {value!r} is out of range")
    if parsed != parsed.quantize(PRICE_SCALE):
        raise ClientInputError(f"Invalid price value: {value!r} has more than two decimal places")
    return parsed


def parse_create_date(value: str, date_format: str) -> date:
    """
    Parse the creation date column.

    Args:
        value: Raw CSV field
        date_format: strptime format, e.g. ``%Y-%m-%d``

    Returns:
        Parsed calendar date
    """
    try:
        return datetime.strptime(value, date_format).date()
    except ValueError:
        raise ClientInputError(f"Invalid date format: {value!r} (expected {date_format})")


def parse_price_row(row: List[str], date_format: str) -> Dict[str, Any]:
    """
    Validate one CSV data row and convert it to an insert mapping.

    Args:
        row: CSV fields in the order id, name, category, price, create_date
        date_format: strptime format for the date column

    Returns:
        Mapping keyed by the prices table column names
    """
    if len(row) != len(PRICE_COLUMNS):
        raise ClientInputError(
            f"Invalid row: expected {len(PRICE_COLUMNS)} fields, got {len(row)}"
        )

    for column, value in (("name", row[1]), ("category", row[2])):
        if "\x00" in value:
            raise ClientInputError(f"Invalid {column} value: contains a NUL character")

    return {
        "id": parse_price_id(row[0]),
        "name": row[1],
        "category": row[2],
        "price": parse_price(row[3]),
        "create_date": parse_create_date(row[4], date_format),
    }
