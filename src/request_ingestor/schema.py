"""Static table definitions for requests and their per-type details."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import (Boolean, Column, ForeignKey, Insert, Integer, MetaData,
                        Table, Text, insert)

from .models import (PAYLOAD_VARIANTS, AccountRequest, AddActivityRequest,
                     DetailPayload, InspectionRequest, NewLicense,
                     StampLicenseRequest)

METADATA = MetaData()

REQUESTS = Table(
    "requests",
    METADATA,
    Column("request_id", Integer, primary_key=True, autoincrement=False),
    Column("request_type", Integer, nullable=False),
    Column("request_status", Integer, nullable=False),
)


def _detail_table(name: str, *columns: Column) -> Table:
    return Table(
        name,
        METADATA,
        Column(
            "request_id",
            Integer,
            ForeignKey("requests.request_id"),
            primary_key=True,
            autoincrement=False,
        ),
        *columns,
    )


@dataclass(frozen=True)
class DetailSchema:
    """Child table for one request type plus the payload model that feeds it."""

    type_code: int
    name: str
    table: Table
    model: type[DetailPayload]

    @property
    def columns(self) -> tuple[str, ...]:
        return self.model.columns()

    def insert_statement(self, request_id: int, values: Sequence[Any]) -> Insert:
        if len(values) != len(self.columns):
            raise ValueError(
                f"{self.name} expects {len(self.columns)} values, got {len(values)}"
            )
        row = dict(zip(self.columns, values))
        row["request_id"] = request_id
        return insert(self.table).values(**row)


_TABLES: Dict[type[DetailPayload], Table] = {
    NewLicense: _detail_table(
        "new_license_requests",
        Column("company_name", Text),
        Column("licence_type", Text),
        Column("is_office", Boolean),
        Column("office_name", Text),
        Column("office_service_number", Text),
        Column("request_date", Text),
        Column("activities", Text),
    ),
    AccountRequest: _detail_table(
        "account_requests",
        Column("company_name", Text),
        Column("requester_name", Text),
        Column("applicant_name", Text),
        Column("user_name", Text),
        Column("contact_email", Text),
        Column("permissions", Text),
    ),
    InspectionRequest: _detail_table(
        "inspection_requests",
        Column("company_name", Text),
        Column("inspection_date", Text),
        Column("inspection_time", Text),
        Column("inspection_type", Text),
    ),
    AddActivityRequest: _detail_table(
        "add_activity_requests",
        Column("company_name", Text),
        Column("licence_id", Text),
        Column("activities", Text),
    ),
    StampLicenseRequest: _detail_table(
        "stamp_license_requests",
        Column("company_name", Text),
        Column("licence_id", Text),
        Column("request_date", Text),
    ),
}

SCHEMA_REGISTRY: Dict[int, DetailSchema] = {
    int(model.TYPE_CODE): DetailSchema(
        type_code=int(model.TYPE_CODE),
        name=model.__name__,
        table=_TABLES[model],
        model=model,
    )
    for model in PAYLOAD_VARIANTS
}


def detail_schema_for(type_code: int) -> Optional[DetailSchema]:
    """Return the detail schema for ``type_code`` or ``None`` if unknown."""
    return SCHEMA_REGISTRY.get(type_code)
