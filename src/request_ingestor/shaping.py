"""Turn classified payloads into column-ordered value tuples."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from .classifier import ClassifiedRecord
from .errors import ShapeMismatch
from .schema import DetailSchema


def _describe(exc: ValidationError) -> str:
    missing, invalid = [], []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "<payload>"
        if error.get("type") == "missing":
            missing.append(field)
        else:
            invalid.append(f"{field} ({error.get('msg')})")
    parts = []
    if missing:
        parts.append("missing " + ", ".join(missing))
    if invalid:
        parts.append("invalid " + ", ".join(invalid))
    return "; ".join(parts)


def shape_payload(record: ClassifiedRecord, schema: DetailSchema) -> tuple[Any, ...]:
    """Validate ``record.payload`` against ``schema`` and return its values.

    Raises ``ShapeMismatch`` when a required key is absent or a value has the
    wrong type.
    """
    try:
        detail = schema.model.model_validate(record.payload)
    except ValidationError as exc:
        raise ShapeMismatch(
            f"{schema.name} payload does not match: {_describe(exc)}",
            request_id=record.request_id,
            type_code=record.type_code,
        ) from exc
    return detail.shape()
