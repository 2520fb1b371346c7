"""Attribute descriptors and flat column specs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from sqlglot import exp

from ..errors import SchemaFault


@dataclass(frozen=True)
class ColumnSpec:
    """Type and optional length of a flat column.

    ``length`` is an int for character types (255) or a "precision,scale"
    string for decimals ("12,4").
    """

    type: str
    length: Optional[Union[int, str]] = None

    @property
    def type_sql(self) -> str:
        if self.length is None:
            return self.type.upper()
        return f"{self.type.upper()}({self.length})"

    def to_data_type(self, dialect: str = "") -> exp.DataType:
        """Build the sqlglot data type node for this spec."""
        return exp.DataType.build(self.type_sql, dialect=dialect or None)


# Flat column definitions derived from an attribute's backend type.
BACKEND_COLUMN_DEFINITIONS: dict[str, ColumnSpec] = {
    "int": ColumnSpec("INTEGER"),
    "decimal": ColumnSpec("DECIMAL", "12,4"),
    "varchar": ColumnSpec("VARCHAR", 255),
    "text": ColumnSpec("TEXT"),
    "datetime": ColumnSpec("TIMESTAMP"),
}

# Resolved option labels are stored as short text.
OPTION_LABEL_COLUMN = ColumnSpec("VARCHAR", 255)


@dataclass(frozen=True)
class AttributeDescriptor:
    """Catalog attribute as seen by the flat table builder.

    Attributes:
        attribute_id: Primary key in the attribute registry; used in EAV joins.
        code: Attribute code, also the flat column name.
        backend_table: Storage table holding the attribute's values. For
            ``static`` attributes this is the entity table itself.
        backend_type: Storage type (int, decimal, varchar, text, datetime, static).
        column: Declared flat column spec. Required for ``static`` attributes,
            optional otherwise.
        has_option_labels: Value is an option id whose store label lives in
            the option value table.
        used_in_flat: Whether the attribute is part of the flat attribute set.
    """

    attribute_id: int
    code: str
    backend_table: Optional[str]
    backend_type: str = "static"
    column: Optional[ColumnSpec] = None
    has_option_labels: bool = False
    used_in_flat: bool = True

    @property
    def is_static(self) -> bool:
        return self.backend_type == "static"

    def require_backend_table(self) -> str:
        if not self.backend_table:
            raise SchemaFault(f"Attribute {self.code!r} has no backend table")
        return self.backend_table

    def flat_column_definition(self) -> ColumnSpec:
        """Return the flat column this attribute derives for itself."""
        if self.column is not None:
            return self.column
        spec = BACKEND_COLUMN_DEFINITIONS.get(self.backend_type)
        if spec is None:
            raise SchemaFault(
                f"Attribute {self.code!r} has no flat column definition "
                f"for backend type {self.backend_type!r}"
            )
        return spec

    def value_column_name(self, value_field_suffix: str) -> str:
        return f"{self.code}{value_field_suffix}"
