"""PostgreSQL database executor for flat table builds."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

try:
    import psycopg2
    from psycopg2.extras import RealDictCursor
except ImportError as e:
    raise ImportError(
        "psycopg2 is not installed. Install with: pip install qt-flat[postgres]"
    ) from e

from ..errors import BackendFault

log = logging.getLogger(__name__)


class PostgresExecutor:
    """PostgreSQL database executor.

    Each statement commits on success and rolls back on failure, so a fault
    in the middle of a build leaves earlier statements in place. Temporary
    tables are session scoped and disappear on ``close()``.

    Environment variables (used as defaults):
        - QT_FLAT_POSTGRES_HOST: PostgreSQL host
        - QT_FLAT_POSTGRES_PORT: PostgreSQL port
        - QT_FLAT_POSTGRES_DATABASE: Database name
        - QT_FLAT_POSTGRES_USER: Username
        - QT_FLAT_POSTGRES_PASSWORD: Password

    Args:
        host: PostgreSQL server hostname.
        port: PostgreSQL server port.
        database: Database name.
        user: Username for authentication.
        password: Password for authentication.
        schema: Schema to use (default: public).
    """

    dialect = "postgres"

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        schema: str = "public",
    ):
        self.host = host or os.getenv("QT_FLAT_POSTGRES_HOST", "localhost")
        self.port = port or int(os.getenv("QT_FLAT_POSTGRES_PORT", "5432"))
        self.database = database or os.getenv("QT_FLAT_POSTGRES_DATABASE", "postgres")
        self.user = user or os.getenv("QT_FLAT_POSTGRES_USER", "postgres")
        self.password = password or os.getenv("QT_FLAT_POSTGRES_PASSWORD", "")
        self.schema = schema
        self._conn: Optional[psycopg2.extensions.connection] = None

    def connect(self) -> None:
        """Open connection to PostgreSQL."""
        if self._conn is not None and not self._conn.closed:
            return  # Already connected

        try:
            self._conn = psycopg2.connect(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
            )
            with self._conn.cursor() as cur:
                cur.execute(f"SET search_path TO {self.schema}, public")
            self._conn.commit()
        except psycopg2.Error as e:
            raise BackendFault(f"Cannot connect to PostgreSQL at {self.host}:{self.port}: {e}") from e

    def close(self) -> None:
        """Close connection to PostgreSQL (drops its temporary tables)."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "PostgresExecutor":
        """Context manager entry - opens connection."""
        self.connect()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - closes connection."""
        self.close()

    def _ensure_connected(self) -> psycopg2.extensions.connection:
        """Ensure connection is open and return it."""
        if self._conn is None or self._conn.closed:
            self.connect()
        assert self._conn is not None
        return self._conn

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        """Execute SQL and return results as list of dicts.

        Raises:
            BackendFault: If PostgreSQL rejects the statement.
        """
        conn = self._ensure_connected()
        log.debug("postgres: %s", sql)

        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                if params:
                    cur.execute(sql, params)
                else:
                    cur.execute(sql)
                rows = [dict(row) for row in cur.fetchall()] if cur.description else []
            conn.commit()
            return rows
        except psycopg2.Error as e:
            conn.rollback()
            raise BackendFault(f"PostgreSQL statement failed: {e}", sql=sql) from e

    def execute_script(self, sql_script: str) -> None:
        """Execute multi-statement SQL script."""
        conn = self._ensure_connected()

        try:
            with conn.cursor() as cur:
                cur.execute(sql_script)
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            raise BackendFault(f"PostgreSQL script failed: {e}", sql=sql_script) from e

    def fetch_scalar(self, sql: str, params: tuple[Any, ...] = ()) -> Any:
        """Execute SQL and return the first column of the first row (or None)."""
        rows = self.execute(sql, params)
        if not rows:
            return None
        return next(iter(rows[0].values()))

    def get_columns(self, table_name: str) -> list[str]:
        """Return column names of a table (temporary tables included), in order."""
        conn = self._ensure_connected()
        try:
            with conn.cursor() as cur:
                cur.execute(f'SELECT * FROM "{table_name}" LIMIT 0')
                columns = [desc[0] for desc in cur.description]
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            raise BackendFault(f"Cannot describe table {table_name!r}: {e}") from e
        return columns
