"""Classify raw records by their type discriminator."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .errors import MalformedPayload, MalformedTypeCode
from .models import RawRecord


@dataclass(frozen=True)
class ClassifiedRecord:
    request_id: int
    type_code: int
    payload: Dict[str, Any]


def coerce_type_code(
    value: Union[int, str, None], request_id: Optional[int] = None
) -> int:
    if isinstance(value, bool):
        raise MalformedTypeCode(
            f"Type code {value!r} is not an integer", request_id=request_id
        )
    if isinstance(value, int):
        return value
    text = value.strip() if isinstance(value, str) else ""
    try:
        return int(text, 10)
    except ValueError as exc:
        raise MalformedTypeCode(
            f"Type code {value!r} is not an integer", request_id=request_id
        ) from exc


def parse_payload(
    text: str, request_id: Optional[int] = None, type_code: Optional[int] = None
) -> Dict[str, Any]:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise MalformedPayload(
            f"RequestData is not valid JSON: {exc}",
            request_id=request_id,
            type_code=type_code,
        ) from exc
    if not isinstance(payload, dict):
        raise MalformedPayload(
            f"RequestData must be a JSON object, got {type(payload).__name__}",
            request_id=request_id,
            type_code=type_code,
        )
    return payload


def classify(
    record: RawRecord, type_code: Optional[int] = None
) -> ClassifiedRecord:
    """Decode the payload of ``record``.

    Pass ``type_code`` when the discriminator has already been coerced.
    """
    if type_code is None:
        type_code = coerce_type_code(record.type_code, request_id=record.request_id)
    payload = parse_payload(
        record.payload, request_id=record.request_id, type_code=type_code
    )
    return ClassifiedRecord(
        request_id=record.request_id, type_code=type_code, payload=payload
    )
