"""Text encodings for structured payload values."""

from __future__ import annotations

import json
from typing import Any, Optional

from dateutil import parser as dtparse


def encode_structured(value: Any) -> str:
    """Serialise a list or mapping to canonical JSON text.

    Keys are sorted so equal mappings always produce the same text; list order
    is kept as given.
    """
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def decode_structured(text: Optional[str]) -> Any:
    if text is None:
        return None
    return json.loads(text)


def normalize_date(value: Optional[str]) -> Optional[str]:
    """Reduce a complete ISO 8601 date or timestamp to its ``YYYY-MM-DD`` date.

    Anything else, including partial dates such as ``2024-05``, is returned
    unchanged.
    """
    if not value:
        return value
    try:
        parsed = dtparse.isoparse(value)
    except (ValueError, OverflowError):
        return value
    day = parsed.date().isoformat()
    return day if value[:10] == day else value
