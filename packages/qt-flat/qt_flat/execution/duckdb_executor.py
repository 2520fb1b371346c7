"""DuckDB database executor for flat table builds."""

from __future__ import annotations

import logging
from typing import Any

try:
    import duckdb
except ImportError as e:
    raise ImportError(
        "DuckDB is not installed. Install with: pip install qt-flat"
    ) from e

from ..errors import BackendFault

log = logging.getLogger(__name__)


class DuckDBExecutor:
    """DuckDB database executor.

    Temporary tables live in the connection's ``temp`` catalog, so every
    build must run on a single executor for its whole lifetime.

    Usage:
        with DuckDBExecutor(":memory:") as db:
            db.execute_script("CREATE TABLE t (x INT); INSERT INTO t VALUES (1);")
            rows = db.execute("SELECT * FROM t")

    Args:
        database: Path to database file or ":memory:" for in-memory database.
    """

    dialect = "duckdb"

    def __init__(self, database: str = ":memory:"):
        self.database = database
        self._conn: duckdb.DuckDBPyConnection | None = None

    def connect(self) -> None:
        """Open connection to DuckDB."""
        if self._conn is not None:
            return  # Already connected

        try:
            self._conn = duckdb.connect(database=self.database)
        except duckdb.Error as e:
            raise BackendFault(f"Cannot open DuckDB database {self.database!r}: {e}") from e

    def close(self) -> None:
        """Close connection to DuckDB."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DuckDBExecutor":
        """Context manager entry - opens connection."""
        self.connect()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - closes connection."""
        self.close()

    def _ensure_connected(self) -> duckdb.DuckDBPyConnection:
        """Ensure connection is open and return it."""
        if self._conn is None:
            self.connect()
        assert self._conn is not None
        return self._conn

    def execute(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> list[dict[str, Any]]:
        """Execute SQL and return results as list of dicts.

        Args:
            sql: SQL statement to execute.
            params: Query parameters as tuple (positional) or dict (named).

        Returns:
            List of dictionaries, one per row.

        Raises:
            BackendFault: If DuckDB rejects the statement.
        """
        conn = self._ensure_connected()
        log.debug("duckdb: %s", sql)

        try:
            if params:
                result = conn.execute(sql, params)
            else:
                result = conn.execute(sql)
            columns = [desc[0] for desc in result.description] if result.description else []
            rows = result.fetchall()
        except duckdb.Error as e:
            raise BackendFault(f"DuckDB statement failed: {e}", sql=sql) from e

        return [dict(zip(columns, row)) for row in rows]

    def execute_script(self, sql_script: str) -> None:
        """Execute multi-statement SQL script.

        Useful for schema creation and data seeding.
        """
        conn = self._ensure_connected()

        try:
            conn.execute(sql_script)
        except duckdb.Error as e:
            raise BackendFault(f"DuckDB script failed: {e}", sql=sql_script) from e

    def fetch_scalar(self, sql: str, params: tuple[Any, ...] | dict[str, Any] = ()) -> Any:
        """Execute SQL and return the first column of the first row (or None)."""
        rows = self.execute(sql, params)
        if not rows:
            return None
        return next(iter(rows[0].values()))

    def get_columns(self, table_name: str) -> list[str]:
        """Return column names of a table (temporary tables included), in order."""
        rows = self.execute(f'DESCRIBE "{table_name}"')
        return [row["column_name"] for row in rows]
