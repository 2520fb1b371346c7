"""Relational backends the flat table builder runs against.

Executor imports are lazy, so DuckDB-only installs never need psycopg2.
"""

from .factory import (
    DatabaseExecutor,
    create_executor_from_dsn,
    duckdb_database,
    postgres_connect_args,
)


def __getattr__(name: str):
    """Lazy import for concrete executor classes."""
    if name == "DuckDBExecutor":
        from .duckdb_executor import DuckDBExecutor
        return DuckDBExecutor
    if name == "PostgresExecutor":
        from .postgres_executor import PostgresExecutor
        return PostgresExecutor
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "DuckDBExecutor",
    "PostgresExecutor",
    "DatabaseExecutor",
    "create_executor_from_dsn",
    "duckdb_database",
    "postgres_connect_args",
]
