# WORKFLOW: Error taxonomy shared by the import/export pipelines and the API.
# Used by: etl/, db/session.py, api/routers/prices.py
# Every pipeline failure is a PricesError carrying the HTTP status the
# request boundary should answer with:
# 1. ClientInputError (400) - bad upload, bad ZIP, bad row data
# 2. ArchiveEntryError (500) - entry or header row could not be read
# 3. StorageError (500) - connection, query, insert or commit failure
# 4. SerializationError (500) - CSV/ZIP write failure during export

"""
Error types raised by the price import/export pipelines.
"""


class PricesError(Exception):
    """Base class for pipeline failures that terminate a request."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientInputError(PricesError):
    """The uploaded archive or one of its rows is malformed."""

    status_code = 400


class ArchiveEntryError(PricesError):
    """An archive entry could not be opened or its header row read."""


class StorageError(PricesError):
    """The database rejected a read, write or commit."""


class SerializationError(PricesError):
    """Writing the CSV payload or the ZIP archive failed."""
