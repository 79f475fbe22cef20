"""Per-batch counters and timing."""

from __future__ import annotations

import time
from typing import Any, Optional

from pydantic import BaseModel, Field

from .errors import RecordError
from .models import RequestType

_COUNTER_FIELDS = {
    RequestType.NEW_LICENSE: "new_license_count",
    RequestType.ACCOUNT_REQUEST: "account_request_count",
    RequestType.INSPECTION_REQUEST: "inspection_request_count",
    RequestType.ADD_ACTIVITY: "add_activity_count",
    RequestType.STAMP_LICENSE: "stamp_license_count",
}


class RecordFailure(BaseModel):
    request_id: int = Field(serialization_alias="requestId")
    type_code: Optional[int] = Field(default=None, serialization_alias="typeCode")
    reason: str


class BatchSummary(BaseModel):
    new_license_count: int = Field(0, serialization_alias="newLicenseCount")
    account_request_count: int = Field(0, serialization_alias="accountRequestCount")
    inspection_request_count: int = Field(
        0, serialization_alias="inspectionRequestCount"
    )
    add_activity_count: int = Field(0, serialization_alias="addActivityCount")
    stamp_license_count: int = Field(0, serialization_alias="stampLicenseCount")
    unrecognized_count: int = Field(0, serialization_alias="unrecognizedCount")
    failed_count: int = Field(0, serialization_alias="failedCount")
    total_rows: int = Field(0, serialization_alias="totalRows")
    total_time_ms: float = Field(0.0, serialization_alias="totalTimeMs")
    failures: list[RecordFailure] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(getattr(self, name) for name in _COUNTER_FIELDS.values())

    def count_for(self, type_code: int) -> int:
        return getattr(self, _COUNTER_FIELDS[RequestType(type_code)])

    def as_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class BatchSummarizer:
    """Accumulates outcomes while a batch is written."""

    def __init__(self, total_rows: int = 0, started: Optional[float] = None) -> None:
        self._started = time.perf_counter() if started is None else started
        self._summary = BatchSummary(total_rows=total_rows)

    def record_success(self, type_code: int) -> None:
        field = _COUNTER_FIELDS[RequestType(type_code)]
        setattr(self._summary, field, getattr(self._summary, field) + 1)

    def record_unrecognized(self) -> None:
        self._summary.unrecognized_count += 1

    def record_failure(self, request_id: int, error: RecordError) -> None:
        self._summary.failed_count += 1
        self._summary.failures.append(
            RecordFailure(
                request_id=request_id, type_code=error.type_code, reason=str(error)
            )
        )

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000.0

    def summary(self) -> BatchSummary:
        return self._summary.model_copy(
            update={"total_time_ms": round(self.elapsed_ms, 3)}, deep=True
        )
