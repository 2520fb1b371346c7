"""SQL rendering for flat table builds.

Selects and DDL are built as sqlglot expressions and rendered per dialect
with every identifier quoted, so attribute codes that collide with keywords
stay valid column names.
"""

from __future__ import annotations

from typing import Optional, Sequence

from sqlglot import exp

from .attributes import AttributeDescriptor
from .schema import ENTITY_ID_COLUMNS, KEY_COLUMN, TemporaryTableDefinition

DEFAULT_STORE_ID = 0
ENTITY_ALIAS = "e"


def _quote(name: str, dialect: str) -> str:
    return exp.to_identifier(name, quoted=True).sql(dialect=dialect)


def _table(name: str, alias: Optional[str] = None) -> exp.Table:
    table = exp.Table(this=exp.to_identifier(name))
    if alias:
        table.set("alias", exp.TableAlias(this=exp.to_identifier(alias)))
    return table


def _entity_column(name: str) -> exp.Column:
    return exp.column(name, table=ENTITY_ALIAS)


def render(expression: exp.Expression, dialect: str) -> str:
    return expression.sql(dialect=dialect, identify=True)


# ── DDL ────────────────────────────────────────────────────────────────


def drop_table_sql(table_name: str, dialect: str) -> str:
    """``DROP TABLE IF EXISTS <table>``."""
    return f"DROP TABLE IF EXISTS {_quote(table_name, dialect)}"


def create_temporary_table_sql(table: TemporaryTableDefinition, dialect: str) -> str:
    """``CREATE TEMPORARY TABLE`` without keys; they are added separately."""
    schema = exp.Schema(
        this=_table(table.name),
        expressions=[
            exp.ColumnDef(this=exp.to_identifier(column.name), kind=column.spec.to_data_type(dialect))
            for column in table.columns
        ],
    )
    create = exp.Create(
        this=schema,
        kind="TABLE",
        properties=exp.Properties(expressions=[exp.TemporaryProperty()]),
    )
    return render(create, dialect)


def add_primary_key_sql(table_name: str, dialect: str, column: str = KEY_COLUMN) -> str:
    """``ALTER TABLE <table> ADD PRIMARY KEY (<column>)``."""
    return (
        f"ALTER TABLE {_quote(table_name, dialect)} "
        f"ADD PRIMARY KEY ({_quote(column, dialect)})"
    )


# ── Selects ────────────────────────────────────────────────────────────


def changed_ids_condition(changed_ids: Sequence[int]) -> exp.Expression:
    """``e.entity_id IN (...)``."""
    return _entity_column(KEY_COLUMN).isin(*[exp.Literal.number(i) for i in changed_ids])


def entity_fill_select(
    entity_table: str,
    attribute_columns: Sequence[str],
    changed_ids: Sequence[int] = (),
) -> exp.Select:
    """Select the key columns and static attribute columns of every entity."""
    columns = list(ENTITY_ID_COLUMNS) + [c for c in attribute_columns if c not in ENTITY_ID_COLUMNS]
    select = exp.select(*[_entity_column(c) for c in columns]).from_(_table(entity_table, ENTITY_ALIAS))
    if changed_ids:
        select = select.where(changed_ids_condition(changed_ids))
    return select


def attribute_fill_select(
    base_table: str,
    storage_table: str,
    chunk: Sequence[tuple[str, AttributeDescriptor]],
    changed_ids: Sequence[int] = (),
) -> exp.Select:
    """Pivot one chunk of attributes out of an EAV storage table.

    Each attribute joins the storage table once (``t1``, ``t2``, ...), on its
    own attribute id and the default store scope. Left joins keep entities
    with no stored value; their column is NULL.
    """
    select = exp.select(_entity_column(KEY_COLUMN)).from_(_table(base_table, ENTITY_ALIAS))
    for position, (column_name, attribute) in enumerate(chunk, start=1):
        alias = f"t{position}"
        condition = exp.and_(
            _entity_column(KEY_COLUMN).eq(exp.column(KEY_COLUMN, table=alias)),
            exp.column("attribute_id", table=alias).eq(exp.Literal.number(attribute.attribute_id)),
            exp.column("store_id", table=alias).eq(exp.Literal.number(DEFAULT_STORE_ID)),
        )
        select = select.join(_table(storage_table, alias), on=condition, join_type="left")
        select = select.select(exp.alias_(exp.column("value", table=alias), column_name))
    if changed_ids:
        select = select.where(changed_ids_condition(changed_ids))
    return select


def value_fill_select(
    group_table: str,
    option_value_table: str,
    chunk: Sequence[tuple[str, AttributeDescriptor]],
    value_field_suffix: str,
    changed_ids: Sequence[int] = (),
) -> tuple[exp.Select, list[str]]:
    """Resolve default-scope option labels for one chunk.

    Reads option ids from the already filled group table. Returns the select
    and its output columns; only ``entity_id`` comes back when no attribute
    in the chunk has option labels.
    """
    select = exp.select(_entity_column(KEY_COLUMN)).from_(_table(group_table, ENTITY_ALIAS))
    value_columns = [KEY_COLUMN]
    for position, (column_name, attribute) in enumerate(chunk, start=1):
        if not attribute.has_option_labels:
            continue
        alias = f"t{position}"
        value_name = attribute.value_column_name(value_field_suffix)
        condition = exp.and_(
            _entity_column(column_name).eq(exp.column("option_id", table=alias)),
            exp.column("store_id", table=alias).eq(exp.Literal.number(DEFAULT_STORE_ID)),
        )
        select = select.join(_table(option_value_table, alias), on=condition, join_type="left")
        select = select.select(exp.alias_(exp.column("value", table=alias), value_name))
        value_columns.append(value_name)
    if changed_ids:
        select = select.where(changed_ids_condition(changed_ids))
    return select, value_columns


# ── Insert from select ────────────────────────────────────────────────


def insert_from_select_sql(
    table_name: str,
    columns: Sequence[str],
    select: exp.Select,
    dialect: str,
    upsert: bool = False,
    key: str = KEY_COLUMN,
) -> str:
    """``INSERT INTO <table> (<columns>) <select>`` with optional upsert.

    With ``upsert``, rows whose key already exists get their non-key
    columns overwritten, so successive chunks fill disjoint columns of the
    same rows.
    """
    column_list = ", ".join(_quote(c, dialect) for c in columns)
    sql = f"INSERT INTO {_quote(table_name, dialect)} ({column_list}) {render(select, dialect)}"
    if not upsert:
        return sql

    updates = [c for c in columns if c != key]
    if not updates:
        return f"{sql} ON CONFLICT ({_quote(key, dialect)}) DO NOTHING"
    assignments = ", ".join(
        f"{_quote(c, dialect)} = EXCLUDED.{_quote(c, dialect)}" for c in updates
    )
    return f"{sql} ON CONFLICT ({_quote(key, dialect)}) DO UPDATE SET {assignments}"
