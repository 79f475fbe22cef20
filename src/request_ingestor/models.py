"""Pydantic models for CSV rows and the per-type request payloads."""

from __future__ import annotations

import json
from enum import IntEnum
from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .serialization import encode_structured, normalize_date


class RequestType(IntEnum):
    NEW_LICENSE = 1
    ACCOUNT_REQUEST = 2
    INSPECTION_REQUEST = 3
    ADD_ACTIVITY = 4
    STAMP_LICENSE = 5


class RawRecord(BaseModel):
    """One CSV row. Identity fields are validated, the rest stay raw."""

    request_id: int = Field(alias="RequestID")
    type_code: Union[int, str] = Field(alias="RequestType")
    status: int = Field(alias="RequestStatus")
    payload: str = Field(alias="RequestData")

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class DetailPayload(BaseModel):
    """Base class for the type-specific payload variants.

    Field order is the column order of the matching detail table. Fields named
    in ``STRUCTURED_FIELDS`` are stored as canonical JSON text and fields in
    ``DATE_FIELDS`` holding a complete ISO timestamp are cut to the date.
    """

    TYPE_CODE: ClassVar[RequestType]
    STRUCTURED_FIELDS: ClassVar[frozenset[str]] = frozenset()
    DATE_FIELDS: ClassVar[frozenset[str]] = frozenset()

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        coerce_numbers_to_str=True,
    )

    @field_validator("activities", "permissions", mode="before", check_fields=False)
    @classmethod
    def decode_structured_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                return value
        return value

    @classmethod
    def columns(cls) -> tuple[str, ...]:
        return tuple(cls.model_fields)

    def shape(self) -> tuple[Any, ...]:
        values = []
        for name in self.columns():
            value = getattr(self, name)
            if name in self.STRUCTURED_FIELDS:
                value = encode_structured(value)
            elif name in self.DATE_FIELDS:
                value = normalize_date(value)
            values.append(value)
        return tuple(values)


class NewLicense(DetailPayload):
    TYPE_CODE = RequestType.NEW_LICENSE
    STRUCTURED_FIELDS = frozenset({"activities"})
    DATE_FIELDS = frozenset({"request_date"})

    company_name: str = Field(alias="CompanyName")
    licence_type: str = Field(alias="LicenceType")
    is_office: bool = Field(alias="IsOffice")
    office_name: Optional[str] = Field(alias="OfficeName")
    office_service_number: Optional[str] = Field(alias="OfficeServiceNumber")
    request_date: str = Field(alias="RequestDate")
    activities: list[Any] = Field(alias="Activities")


class AccountRequest(DetailPayload):
    TYPE_CODE = RequestType.ACCOUNT_REQUEST
    STRUCTURED_FIELDS = frozenset({"permissions"})

    company_name: str = Field(alias="CompanyName")
    requester_name: str = Field(alias="RequesterName")
    applicant_name: str = Field(alias="ApplicantName")
    user_name: str = Field(alias="UserName")
    contact_email: str = Field(alias="ContactEmail")
    permissions: Union[list[Any], dict[str, Any]] = Field(alias="Permissions")


class InspectionRequest(DetailPayload):
    TYPE_CODE = RequestType.INSPECTION_REQUEST
    DATE_FIELDS = frozenset({"inspection_date"})

    company_name: str = Field(alias="CompanyName")
    inspection_date: str = Field(alias="InspectionDate")
    inspection_time: str = Field(alias="InspectionTime")
    inspection_type: str = Field(alias="InspectionType")


class AddActivityRequest(DetailPayload):
    TYPE_CODE = RequestType.ADD_ACTIVITY
    STRUCTURED_FIELDS = frozenset({"activities"})

    company_name: str = Field(alias="CompanyName")
    licence_id: str = Field(alias="LicenceID")
    activities: list[Any] = Field(alias="Activities")


class StampLicenseRequest(DetailPayload):
    TYPE_CODE = RequestType.STAMP_LICENSE
    DATE_FIELDS = frozenset({"request_date"})

    company_name: str = Field(alias="CompanyName")
    licence_id: str = Field(alias="LicenceID")
    request_date: str = Field(alias="RequestDate")


PAYLOAD_VARIANTS: tuple[type[DetailPayload], ...] = (
    NewLicense,
    AccountRequest,
    InspectionRequest,
    AddActivityRequest,
    StampLicenseRequest,
)
