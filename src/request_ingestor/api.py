"""HTTP upload surface for CSV batches."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile, status
from fastapi.responses import HTMLResponse, JSONResponse

from .config import Settings
from .db_connector import DatabaseSession
from .errors import BatchError, CsvParseError, EmptyBatch
from .ingest import ingest_csv
from .logging_utils import get_logger

logger = get_logger("request_ingestor.api")

UPLOAD_FORM = """<!doctype html>
<html>
  <head><title>Upload requests</title></head>
  <body>
    <h1>Upload request CSV</h1>
    <form action="/upload-csv" method="post" enctype="multipart/form-data">
      <input type="file" name="file" accept=".csv,text/csv">
      <button type="submit">Upload</button>
    </form>
  </body>
</html>
"""


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        session = DatabaseSession(settings)
        await session.open()
        if settings.apply_schema:
            await session.ensure_schema()
        app.state.session = session
        try:
            yield
        finally:
            await session.dispose()

    app = FastAPI(title="Request Ingestor", lifespan=lifespan)

    @app.get("/", response_class=HTMLResponse)
    async def index() -> str:
        return UPLOAD_FORM

    @app.get("/health")
    async def health() -> dict:
        return {"status": "healthy"}

    @app.post("/upload-csv")
    async def upload_csv(
        request: Request, file: Optional[UploadFile] = File(None)
    ) -> JSONResponse:
        content = ""
        if file is not None:
            try:
                content = (await file.read()).decode("utf-8-sig")
            except UnicodeDecodeError as exc:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"CSV file is not valid UTF-8 (byte {exc.start})",
                ) from exc
        if not content.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No CSV file uploaded",
            )

        logger.info("Received CSV upload %s (%s bytes)", file.filename, len(content))
        session: DatabaseSession = request.app.state.session
        try:
            summary = await ingest_csv(
                session.engine, content, timeout=settings.batch_timeout_seconds
            )
        except (CsvParseError, EmptyBatch) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        except BatchError as exc:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": str(exc), "status": "rolled_back"},
            )
        return JSONResponse(content=summary.as_response())

    return app
