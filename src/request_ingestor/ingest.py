"""Drive one CSV batch from raw text to a committed summary."""

from __future__ import annotations

import asyncio
import csv
import io
import logging
import time
from enum import Enum
from typing import Optional, Sequence

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from .errors import (BatchError, BatchTimeout, CsvParseError, EmptyBatch,
                     StorageError)
from .models import RawRecord
from .summary import BatchSummarizer, BatchSummary
from .writer import TransactionalWriter

LOGGER = logging.getLogger("request_ingestor.ingest")

REQUIRED_COLUMNS = ("RequestID", "RequestType", "RequestStatus", "RequestData")


class BatchState(str, Enum):
    RECEIVED = "received"
    PARSED = "parsed"
    WRITING = "writing"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


def parse_csv(csv_text: str) -> list[RawRecord]:
    """Parse comma-delimited text with a header row into records."""
    reader = csv.DictReader(io.StringIO(csv_text.lstrip("\ufeff")))
    try:
        header = reader.fieldnames
    except csv.Error as exc:
        raise CsvParseError(f"Unreadable CSV header: {exc}") from exc
    if not header:
        raise CsvParseError("CSV has no header row")
    missing = [column for column in REQUIRED_COLUMNS if column not in header]
    if missing:
        raise CsvParseError(f"CSV header is missing columns: {', '.join(missing)}")

    records: list[RawRecord] = []
    try:
        for row in reader:
            line = reader.line_num
            if None in row:
                raise CsvParseError(f"Line {line}: more fields than header columns")
            if any(value is None for value in row.values()):
                raise CsvParseError(f"Line {line}: fewer fields than header columns")
            try:
                records.append(RawRecord.model_validate(row))
            except ValidationError as exc:
                fields = ", ".join(
                    str(error["loc"][0]) for error in exc.errors() if error.get("loc")
                )
                raise CsvParseError(f"Line {line}: invalid {fields}") from exc
    except csv.Error as exc:
        raise CsvParseError(f"Line {reader.line_num}: {exc}") from exc
    return records


class IngestionBatch:
    """One upload, processed as a single transaction.

    ``state`` follows RECEIVED -> PARSED -> WRITING -> COMMITTED, or ends in
    ROLLED_BACK when a batch-level error occurs after parsing.
    """

    def __init__(
        self, engine: AsyncEngine, csv_text: str, timeout: Optional[float] = None
    ) -> None:
        self._engine = engine
        self._csv_text = csv_text
        self._timeout = timeout
        self.state = BatchState.RECEIVED
        self.records: list[RawRecord] = []

    async def run(self) -> BatchSummary:
        started = time.perf_counter()
        self.records = parse_csv(self._csv_text)
        if not self.records:
            raise EmptyBatch("CSV contains no data rows")
        self.state = BatchState.PARSED
        LOGGER.info("Parsed %s records", len(self.records))

        summarizer = BatchSummarizer(total_rows=len(self.records), started=started)
        try:
            await asyncio.wait_for(
                self._write_all(self.records, summarizer), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            self.state = BatchState.ROLLED_BACK
            LOGGER.error("Batch timed out after %ss; rolled back", self._timeout)
            raise BatchTimeout(
                f"Batch did not finish within {self._timeout} seconds"
            ) from exc
        except BatchError as exc:
            self.state = BatchState.ROLLED_BACK
            LOGGER.error("Batch aborted and rolled back: %s", exc)
            raise
        except Exception:
            self.state = BatchState.ROLLED_BACK
            LOGGER.exception("Batch failed unexpectedly; rolled back")
            raise

        self.state = BatchState.COMMITTED
        summary = summarizer.summary()
        LOGGER.info(
            "Batch committed: %s stored, %s unrecognized, %s failed in %.1f ms",
            summary.success_count,
            summary.unrecognized_count,
            summary.failed_count,
            summary.total_time_ms,
        )
        return summary

    async def _write_all(
        self, records: Sequence[RawRecord], summarizer: BatchSummarizer
    ) -> None:
        try:
            async with self._engine.begin() as conn:
                self.state = BatchState.WRITING
                writer = TransactionalWriter(conn, summarizer)
                for record in records:
                    await writer.write(record)
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Storage failure: {getattr(exc, 'orig', None) or exc}"
            ) from exc


async def ingest_csv(
    engine: AsyncEngine, csv_text: str, timeout: Optional[float] = None
) -> BatchSummary:
    return await IngestionBatch(engine, csv_text, timeout=timeout).run()
