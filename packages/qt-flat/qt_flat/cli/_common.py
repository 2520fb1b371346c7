"""Shared CLI helpers: executor resolution, Rich output."""

from __future__ import annotations

from typing import Optional

import click
from rich.console import Console

from ..config import get_settings
from ..execution import DatabaseExecutor, create_executor_from_dsn

console = Console()


def open_executor(dsn: Optional[str]) -> DatabaseExecutor:
    """Create and connect an executor for ``dsn`` (or the configured DSN)."""
    dsn = dsn or get_settings().database_dsn
    try:
        executor = create_executor_from_dsn(dsn)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--dsn'")
    executor.connect()
    return executor
