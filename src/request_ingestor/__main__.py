from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import Settings
from .db_connector import DatabaseSession
from .errors import BatchError
from .ingest import ingest_csv
from .logging_utils import setup_logging
from .summary import BatchSummary

console = Console()
LOGGER = logging.getLogger("request_ingestor")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="request-ingestor",
        description="Load request CSV files into the relational store.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    ingest = commands.add_parser("ingest", help="Ingest one CSV file")
    ingest.add_argument("csv_path", type=Path, help="Path to the CSV file")

    commands.add_parser("init-schema", help="Create the tables if they are missing")

    serve = commands.add_parser("serve", help="Run the HTTP upload service")
    serve.add_argument("--host", default=None, help="Bind address")
    serve.add_argument("--port", type=int, default=None, help="Bind port")
    return parser


def render_summary(summary: BatchSummary) -> Table:
    table = Table(title="Ingestion summary")
    table.add_column("Request type")
    table.add_column("Stored", justify="right")
    table.add_row("New license", str(summary.new_license_count))
    table.add_row("Account request", str(summary.account_request_count))
    table.add_row("Inspection request", str(summary.inspection_request_count))
    table.add_row("Add activity", str(summary.add_activity_count))
    table.add_row("Stamp license", str(summary.stamp_license_count))
    table.add_row("Unrecognized", str(summary.unrecognized_count))
    table.add_row("Failed", str(summary.failed_count))
    table.add_row("Total rows", str(summary.total_rows))
    table.caption = f"Total time: {summary.total_time_ms:.1f} ms"
    return table


async def run_ingest(settings: Settings, csv_path: Path) -> BatchSummary:
    csv_text = csv_path.read_text(encoding="utf-8-sig")
    async with DatabaseSession(settings) as session:
        if settings.apply_schema:
            await session.ensure_schema()
        return await ingest_csv(
            session.engine, csv_text, timeout=settings.batch_timeout_seconds
        )


async def run_init_schema(settings: Settings) -> None:
    async with DatabaseSession(settings) as session:
        await session.ensure_schema()


def serve(settings: Settings, host: Optional[str], port: Optional[int]) -> None:
    import uvicorn

    from .api import create_app

    uvicorn.run(
        create_app(settings),
        host=host or settings.http_host,
        port=port or settings.http_port,
        log_level=settings.log_level.lower(),
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    load_dotenv()
    try:
        settings = Settings.from_env()
    except Exception as exc:  # pragma: no cover - guard for CLI usage
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)
    setup_logging(settings.log_level)

    try:
        if args.command == "ingest":
            summary = asyncio.run(run_ingest(settings, args.csv_path))
            console.print(render_summary(summary))
            for failure in summary.failures:
                reason = escape(failure.reason)
                console.print(
                    f"[yellow]Request {failure.request_id}:[/yellow] {reason}"
                )
        elif args.command == "init-schema":
            asyncio.run(run_init_schema(settings))
        elif args.command == "serve":
            serve(settings, args.host, args.port)
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.error("Cannot read input: %s", exc)
        print(f"Cannot read input: {exc}", file=sys.stderr)
        sys.exit(1)
    except BatchError as exc:
        LOGGER.error("Batch failed: %s", exc)
        print(f"Batch failed: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception as exc:  # pragma: no cover - guard for CLI usage
        LOGGER.exception("Ingestion failed")
        print(f"Ingestion failed: {exc}", file=sys.stderr)
        sys.exit(3)


if __name__ == "__main__":
    main()
