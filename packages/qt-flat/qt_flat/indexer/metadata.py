"""Catalog metadata providers.

The table builder needs five things from the catalog: the entity table, the
option value table, the flat attribute set, the grouping of those attributes
by storage table, and the flat column specs. ``StaticCatalogMetadata`` serves
them from memory; ``EavCatalogMetadata`` reads them from the attribute
registry table of a live database.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Mapping, Optional, Protocol

from sqlglot import exp

from ..config import Settings, get_settings
from ..errors import SchemaFault
from ..execution import DatabaseExecutor
from .attributes import OPTION_LABEL_COLUMN, AttributeDescriptor, ColumnSpec

log = logging.getLogger(__name__)

# storage table -> column name -> attribute
TableSchema = Mapping[str, Mapping[str, AttributeDescriptor]]

# Columns every entity row carries; never treated as attribute columns.
SYSTEM_FLAT_COLUMNS: dict[str, ColumnSpec] = {
    "entity_id": ColumnSpec("INTEGER"),
    "type_id": ColumnSpec("VARCHAR", 32),
    "attribute_set_id": ColumnSpec("INTEGER"),
}

# Declared columns of the usual static product attributes.
STATIC_FLAT_COLUMNS: dict[str, ColumnSpec] = {
    "sku": ColumnSpec("VARCHAR", 64),
    "has_options": ColumnSpec("SMALLINT"),
    "required_options": ColumnSpec("SMALLINT"),
    "created_at": ColumnSpec("TIMESTAMP"),
    "updated_at": ColumnSpec("TIMESTAMP"),
}


class CatalogMetadata(Protocol):
    """What the table builder reads from the catalog."""

    def entity_table(self) -> str:
        ...

    def option_value_table(self) -> str:
        ...

    def attributes(self) -> list[AttributeDescriptor]:
        """Attributes that belong in the flat table."""
        ...

    def tables_structure(self, attributes: Iterable[AttributeDescriptor]) -> dict[str, dict[str, AttributeDescriptor]]:
        ...

    def get_attribute(self, code: str) -> AttributeDescriptor:
        ...

    def flat_columns(self, value_field_suffix: str) -> dict[str, ColumnSpec]:
        ...


def group_by_storage_table(
    attributes: Iterable[AttributeDescriptor],
) -> dict[str, dict[str, AttributeDescriptor]]:
    """Group attributes by backend table, keyed by flat column name.

    Order follows the input order, both for tables and for columns.

    Raises:
        SchemaFault: If an attribute has no backend table.
    """
    structure: dict[str, dict[str, AttributeDescriptor]] = {}
    for attribute in attributes:
        table = attribute.require_backend_table()
        structure.setdefault(table, {})[attribute.code] = attribute
    return structure


class _BaseCatalogMetadata(ABC):
    """Shared lookups over an attribute list."""

    def __init__(
        self,
        entity_table: str,
        option_value_table: str,
        flat_column_overrides: Optional[Mapping[str, ColumnSpec]] = None,
    ):
        self._entity_table = entity_table
        self._option_value_table = option_value_table
        self._overrides = dict(flat_column_overrides or {})

    @abstractmethod
    def _all_attributes(self) -> list[AttributeDescriptor]:
        """Every known attribute, flat or not."""
        ...

    def entity_table(self) -> str:
        return self._entity_table

    def option_value_table(self) -> str:
        return self._option_value_table

    def attributes(self) -> list[AttributeDescriptor]:
        return [a for a in self._all_attributes() if a.used_in_flat]

    def tables_structure(self, attributes: Iterable[AttributeDescriptor]) -> dict[str, dict[str, AttributeDescriptor]]:
        return group_by_storage_table(attributes)

    def get_attribute(self, code: str) -> AttributeDescriptor:
        for attribute in self._all_attributes():
            if attribute.code == code:
                return attribute
        raise SchemaFault(f"Unknown attribute code: {code!r}")

    def flat_columns(self, value_field_suffix: str) -> dict[str, ColumnSpec]:
        """Explicit flat column specs, keyed by column name.

        Holds the system columns, every declared attribute column, a label
        column ``code + suffix`` for option attributes, and finally any
        overrides passed at construction time.
        """
        columns = dict(SYSTEM_FLAT_COLUMNS)
        for attribute in self._all_attributes():
            if attribute.column is not None:
                columns[attribute.code] = attribute.column
            if attribute.has_option_labels:
                columns[attribute.value_column_name(value_field_suffix)] = OPTION_LABEL_COLUMN
        columns.update(self._overrides)
        return columns


class StaticCatalogMetadata(_BaseCatalogMetadata):
    """In-memory catalog metadata.

    Usage:
        metadata = StaticCatalogMetadata(
            entity_table="catalog_product_entity",
            attributes=[
                AttributeDescriptor(71, "name", "catalog_product_entity_varchar", "varchar"),
                AttributeDescriptor(96, "status", "catalog_product_entity_int", "int",
                                    used_in_flat=False),
            ],
        )
    """

    def __init__(
        self,
        entity_table: str,
        attributes: Iterable[AttributeDescriptor],
        option_value_table: str = "eav_attribute_option_value",
        flat_column_overrides: Optional[Mapping[str, ColumnSpec]] = None,
    ):
        super().__init__(entity_table, option_value_table, flat_column_overrides)
        self._attributes = list(attributes)

    def _all_attributes(self) -> list[AttributeDescriptor]:
        return self._attributes


class EavCatalogMetadata(_BaseCatalogMetadata):
    """Catalog metadata read from the attribute registry table.

    Expects the registry to expose ``attribute_id``, ``attribute_code``,
    ``backend_type``, ``backend_table``, ``frontend_input`` and
    ``used_in_flat`` per attribute, filtered by ``entity_type_id``. An empty
    ``backend_table`` falls back to ``{entity_table}_{backend_type}`` (or the
    entity table itself for static attributes). ``select`` inputs on an
    ``int`` backend resolve their labels from the option value table.

    Rows are read once per instance.
    """

    def __init__(self, executor: DatabaseExecutor, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        super().__init__(settings.entity_table, settings.option_value_table)
        self._executor = executor
        self._attribute_table = settings.attribute_table
        self._entity_type_id = settings.entity_type_id
        self._cache: Optional[list[AttributeDescriptor]] = None

    def _select_sql(self) -> str:
        select = (
            exp.select(
                "attribute_id",
                "attribute_code",
                "backend_type",
                "backend_table",
                "frontend_input",
                "used_in_flat",
            )
            .from_(self._attribute_table)
            .where(exp.column("entity_type_id").eq(exp.Literal.number(self._entity_type_id)))
            .order_by("attribute_id")
        )
        return select.sql(dialect=self._executor.dialect)

    def _descriptor_from_row(self, row: dict) -> AttributeDescriptor:
        code = row["attribute_code"]
        backend_type = (row.get("backend_type") or "static").lower()
        backend_table = row.get("backend_table") or (
            self._entity_table if backend_type == "static"
            else f"{self._entity_table}_{backend_type}"
        )
        column = STATIC_FLAT_COLUMNS.get(code) if backend_type == "static" else None
        return AttributeDescriptor(
            attribute_id=int(row["attribute_id"]),
            code=code,
            backend_table=backend_table,
            backend_type=backend_type,
            column=column,
            has_option_labels=row.get("frontend_input") == "select" and backend_type == "int",
            used_in_flat=bool(row.get("used_in_flat")),
        )

    def _all_attributes(self) -> list[AttributeDescriptor]:
        if self._cache is None:
            rows = self._executor.execute(self._select_sql())
            self._cache = [
                self._descriptor_from_row(row)
                for row in rows
                if row["attribute_code"] not in SYSTEM_FLAT_COLUMNS
            ]
            log.debug("Loaded %d attributes from %s", len(self._cache), self._attribute_table)
        return self._cache
