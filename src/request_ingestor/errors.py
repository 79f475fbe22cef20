"""Exception taxonomy for batch ingestion."""

from __future__ import annotations

from typing import Optional


class IngestionError(Exception):
    """Base class for all ingestion failures."""


class BatchError(IngestionError):
    """Fatal failure: the whole batch is rolled back."""


class CsvParseError(BatchError):
    """Raised when the CSV text cannot be turned into records."""


class EmptyBatch(BatchError):
    """Raised when the CSV contains a header but no data rows."""


class RequestInsertError(BatchError):
    """Raised when the parent request row cannot be written."""

    def __init__(self, request_id: int, message: str) -> None:
        super().__init__(f"Request {request_id}: {message}")
        self.request_id = request_id


class BatchTimeout(BatchError):
    """Raised when the write phase exceeds the configured timeout."""


class StorageError(BatchError):
    """Raised when the database fails outside a single row insert.

    Covers opening the batch connection and committing the transaction.
    """


class RecordError(IngestionError):
    """Record-level failure; only the detail write of one record is skipped."""

    def __init__(
        self,
        message: str,
        request_id: Optional[int] = None,
        type_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.request_id = request_id
        self.type_code = type_code


class MalformedTypeCode(RecordError):
    """The type discriminator is not an integer."""


class MalformedPayload(RecordError):
    """``RequestData`` is not a JSON object."""


class ShapeMismatch(RecordError):
    """The payload does not match the schema of its request type."""


class DetailInsertError(RecordError):
    """The child row insert was rejected by the database."""
