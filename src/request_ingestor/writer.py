"""Writes one batch of records inside a single database transaction."""

from __future__ import annotations

import logging

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from .classifier import classify, coerce_type_code
from .errors import (DetailInsertError, MalformedTypeCode, RecordError,
                     RequestInsertError)
from .models import RawRecord
from .schema import REQUESTS, DetailSchema, detail_schema_for
from .shaping import shape_payload
from .summary import BatchSummarizer

LOGGER = logging.getLogger("request_ingestor.writer")


class TransactionalWriter:
    """Persist records on a connection whose transaction the caller owns.

    Parent rows establish identity, so a failed parent insert propagates and
    the caller rolls the batch back. Detail rows are written inside a
    SAVEPOINT and a failure there only skips that record.
    """

    def __init__(self, conn: AsyncConnection, summarizer: BatchSummarizer) -> None:
        self._conn = conn
        self._summarizer = summarizer

    async def write(self, record: RawRecord) -> None:
        try:
            type_code = coerce_type_code(
                record.type_code, request_id=record.request_id
            )
        except MalformedTypeCode as exc:
            self._skip(record, exc)
            return

        await self._insert_request(record, type_code)

        schema = detail_schema_for(type_code)
        if schema is None:
            LOGGER.warning(
                "Request %s has unrecognized type %s; stored without details",
                record.request_id,
                type_code,
            )
            self._summarizer.record_unrecognized()
            return

        try:
            values = shape_payload(classify(record, type_code), schema)
            await self._insert_detail(schema, record.request_id, values)
        except RecordError as exc:
            self._skip(record, exc)
            return

        self._summarizer.record_success(type_code)

    async def _insert_request(self, record: RawRecord, type_code: int) -> None:
        stmt = insert(REQUESTS).values(
            request_id=record.request_id,
            request_type=type_code,
            request_status=record.status,
        )
        try:
            await self._conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise RequestInsertError(
                record.request_id, str(getattr(exc, "orig", None) or exc)
            ) from exc

    async def _insert_detail(
        self, schema: DetailSchema, request_id: int, values: tuple
    ) -> None:
        try:
            async with self._conn.begin_nested():
                await self._conn.execute(schema.insert_statement(request_id, values))
        except SQLAlchemyError as exc:
            raise DetailInsertError(
                f"{schema.name} insert failed: {getattr(exc, 'orig', None) or exc}",
                request_id=request_id,
                type_code=schema.type_code,
            ) from exc

    def _skip(self, record: RawRecord, exc: RecordError) -> None:
        LOGGER.warning("Skipping details for request %s: %s", record.request_id, exc)
        self._summarizer.record_failure(record.request_id, exc)
