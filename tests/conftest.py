import csv
import io
import json
from typing import Any, Iterable

import pytest
import pytest_asyncio
from sqlalchemy import Table, func, select
from sqlalchemy.ext.asyncio import AsyncEngine

from request_ingestor.config import Settings
from request_ingestor.db_connector import DatabaseSession

HEADER = ("RequestID", "RequestType", "RequestStatus", "RequestData")

LICENSE_PAYLOAD = {
    "CompanyName": "Acme Trading",
    "LicenceType": "Commercial",
    "IsOffice": True,
    "OfficeName": "Head Office",
    "OfficeServiceNumber": "OS-100",
    "RequestDate": "2024-01-15",
    "Activities": ["Import", "Export", "Wholesale"],
}

ACCOUNT_PAYLOAD = {
    "CompanyName": "Acme Trading",
    "RequesterName": "Sam Carter",
    "ApplicantName": "Alex Moreno",
    "UserName": "amoreno",
    "ContactEmail": "alex@example.com",
    "Permissions": {"submit": True, "view": True, "approve": False},
}

INSPECTION_PAYLOAD = {
    "CompanyName": "Acme Trading",
    "InspectionDate": "2024-02-01",
    "InspectionTime": "10:30",
    "InspectionType": "Safety",
}

ADD_ACTIVITY_PAYLOAD = {
    "CompanyName": "Acme Trading",
    "LicenceID": "LIC-7",
    "Activities": ["Retail"],
}

STAMP_PAYLOAD = {
    "CompanyName": "Acme Trading",
    "LicenceID": 42,
    "RequestDate": "2024-03-05",
}


def make_csv(rows: Iterable[tuple[Any, Any, Any, Any]], header=HEADER) -> str:
    """Build CSV text; dict payloads are serialised to JSON."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    for request_id, type_code, status, payload in rows:
        if isinstance(payload, dict):
            payload = json.dumps(payload)
        writer.writerow([request_id, type_code, status, payload])
    return buffer.getvalue()


async def fetch_rows(engine: AsyncEngine, table: Table) -> list[dict[str, Any]]:
    async with engine.connect() as conn:
        result = await conn.execute(select(table).order_by(table.c.request_id))
        return [dict(row) for row in result.mappings().all()]


async def count_rows(engine: AsyncEngine, table: Table) -> int:
    async with engine.connect() as conn:
        result = await conn.execute(select(func.count()).select_from(table))
        return result.scalar_one()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'requests.db'}",
        connect_timeout=0,
        batch_timeout=30,
    )


@pytest_asyncio.fixture
async def session(settings: Settings):
    db = DatabaseSession(settings)
    await db.open()
    await db.ensure_schema()
    yield db
    await db.dispose()


@pytest.fixture
def unreachable_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'requests.db'}"


@pytest.fixture
def skip_connect_check(monkeypatch):
    """Let ``DatabaseSession.open`` hand out its engine without probing it."""

    async def open_unchecked(self):
        self._engine = self._create_engine()
        return self._engine

    monkeypatch.setattr(DatabaseSession, "open", open_unchecked)
