"""Compilation of catalog metadata into temporary table shapes.

Everything here is pure: the build plan is computed once, before any DDL is
issued, and can be inspected without a database.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from .attributes import OPTION_LABEL_COLUMN, AttributeDescriptor, ColumnSpec
from .metadata import SYSTEM_FLAT_COLUMNS, CatalogMetadata, TableSchema
from .naming import temporary_table_name, value_table_name

KEY_COLUMN = "entity_id"
ENTITY_ID_COLUMNS = ("entity_id", "type_id", "attribute_set_id")


@dataclass(frozen=True)
class ColumnDefinition:
    name: str
    spec: ColumnSpec


@dataclass(frozen=True)
class TemporaryTableDefinition:
    """Shape of one temporary table; ``entity_id`` is its only key."""

    name: str
    columns: tuple[ColumnDefinition, ...]
    primary_key: str = KEY_COLUMN

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


@dataclass(frozen=True)
class GroupPlan:
    """Temporary tables and attribute columns for one storage table."""

    storage_table: str
    table: TemporaryTableDefinition
    value_table: Optional[TemporaryTableDefinition]
    attributes: tuple[tuple[str, AttributeDescriptor], ...]

    @property
    def attribute_columns(self) -> list[str]:
        return [name for name, _ in self.attributes]


@dataclass(frozen=True)
class BuildPlan:
    """Compiled shapes for every group of a build.

    ``entity`` is the base table holding all in-scope entities; ``groups``
    are the attribute groups filled from it, in schema order.
    """

    entity_table: str
    option_value_table: str
    value_field_suffix: str
    entity: GroupPlan
    groups: tuple[GroupPlan, ...]

    def group(self, storage_table: str) -> GroupPlan:
        if storage_table == self.entity_table:
            return self.entity
        for plan in self.groups:
            if plan.storage_table == storage_table:
                return plan
        raise KeyError(storage_table)

    @property
    def table_names(self) -> list[str]:
        names = [self.entity.table.name]
        for plan in self.groups:
            names.append(plan.table.name)
            if plan.value_table is not None:
                names.append(plan.value_table.name)
        return names


def compile_table_schema(metadata: CatalogMetadata) -> TableSchema:
    """Group the flat attribute set by storage table and add ``status``.

    ``status`` is looked up by code and placed into the group of its own
    storage table even when it is not part of the flat attribute set. The
    entity table's group is always present. The result is read-only.

    Raises:
        SchemaFault: If an attribute has no backend table or ``status``
            is unknown.
    """
    entity_table = metadata.entity_table()
    structure = metadata.tables_structure(metadata.attributes())

    schema: dict[str, dict[str, AttributeDescriptor]] = {entity_table: {}}
    for table, columns in structure.items():
        schema.setdefault(table, {}).update(columns)

    status = metadata.get_attribute("status")
    schema.setdefault(status.require_backend_table(), {})["status"] = status

    return MappingProxyType({
        table: MappingProxyType(dict(columns)) for table, columns in schema.items()
    })


def resolve_column_spec(
    attribute: AttributeDescriptor,
    flat_columns: Mapping[str, ColumnSpec],
) -> ColumnSpec:
    """Explicit flat column spec by code, else the attribute's own definition."""
    spec = flat_columns.get(attribute.code)
    if spec is not None:
        return spec
    return attribute.flat_column_definition()


def compile_temporary_table(
    storage_table: str,
    columns: Mapping[str, AttributeDescriptor],
    flat_columns: Mapping[str, ColumnSpec],
    value_field_suffix: str,
    is_entity: bool = False,
) -> tuple[TemporaryTableDefinition, Optional[TemporaryTableDefinition]]:
    """Compile the temporary table (and label table, if any) for one group.

    The entity table gets ``type_id`` and ``attribute_set_id`` next to the
    key and never has a label table. A label table is returned only when
    some attribute in the group has option labels.
    """
    key_names = ENTITY_ID_COLUMNS if is_entity else (KEY_COLUMN,)
    table_columns = [
        ColumnDefinition(name, flat_columns.get(name, SYSTEM_FLAT_COLUMNS[name]))
        for name in key_names
    ]
    value_columns = [ColumnDefinition(KEY_COLUMN, table_columns[0].spec)]

    for column_name, attribute in columns.items():
        if column_name in key_names:
            continue
        table_columns.append(ColumnDefinition(column_name, resolve_column_spec(attribute, flat_columns)))
        if attribute.has_option_labels and not is_entity:
            value_name = attribute.value_column_name(value_field_suffix)
            value_columns.append(
                ColumnDefinition(value_name, flat_columns.get(value_name, OPTION_LABEL_COLUMN))
            )

    table = TemporaryTableDefinition(temporary_table_name(storage_table), tuple(table_columns))
    value_table = None
    if len(value_columns) > 1:
        value_table = TemporaryTableDefinition(
            value_table_name(storage_table, value_field_suffix), tuple(value_columns)
        )
    return table, value_table


def compile_build_plan(
    metadata: CatalogMetadata,
    value_field_suffix: str,
    schema: Optional[TableSchema] = None,
) -> BuildPlan:
    """Compile every temporary table shape for a build.

    Groups without columns are skipped; the entity group never is.
    """
    schema = schema if schema is not None else compile_table_schema(metadata)
    entity_table = metadata.entity_table()
    flat_columns = metadata.flat_columns(value_field_suffix)

    entity_columns = schema[entity_table]
    table, _ = compile_temporary_table(
        entity_table, entity_columns, flat_columns, value_field_suffix, is_entity=True
    )
    entity = GroupPlan(
        storage_table=entity_table,
        table=table,
        value_table=None,
        attributes=tuple(
            (name, attr) for name, attr in entity_columns.items() if name not in ENTITY_ID_COLUMNS
        ),
    )

    groups = []
    for storage_table, columns in schema.items():
        if storage_table == entity_table or not columns:
            continue
        table, value_table = compile_temporary_table(
            storage_table, columns, flat_columns, value_field_suffix
        )
        groups.append(GroupPlan(
            storage_table=storage_table,
            table=table,
            value_table=value_table,
            attributes=tuple(columns.items()),
        ))

    return BuildPlan(
        entity_table=entity_table,
        option_value_table=metadata.option_value_table(),
        value_field_suffix=value_field_suffix,
        entity=entity,
        groups=tuple(groups),
    )
