"""Error types raised by the flat-table rebuild engine."""

from __future__ import annotations

from typing import Optional


class FlatIndexerError(Exception):
    """Base class for flat indexer failures."""


class SchemaFault(FlatIndexerError):
    """Raised when attribute metadata is missing or cannot be compiled.

    Examples: an attribute without a backend table, a backend type with no
    flat column definition, or an unknown attribute code.
    """


class BackendFault(FlatIndexerError):
    """Raised when the relational backend rejects a statement.

    Wraps the driver exception (available as ``__cause__``) and keeps the
    SQL that failed so callers can report it.
    """

    def __init__(self, message: str, sql: Optional[str] = None):
        super().__init__(message)
        self.sql = sql
