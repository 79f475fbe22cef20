"""Logging setup helpers using Rich."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: str = "INFO", console: Optional[Console] = None) -> None:
    """Configure logging to use Rich's console rendering."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=False,
        show_level=True,
        show_time=True,
        show_path=False,
        markup=False,
    )
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "request_ingestor")
