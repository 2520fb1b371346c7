"""Flat table builder: denormalize EAV product data into temporary tables.

A build runs once per builder instance:

1. Compile the schema: attributes grouped by storage table, ``status`` added.
2. Drop and create one temporary table per group (plus a label table where
   some attribute has option labels).
3. Fill the entity base table straight from the entity table, then key it.
4. Key every other group table and fill it chunk by chunk, left-joining the
   storage table once per attribute against the base table.

The produced table names are returned in a ``BuildResult`` and follow
``naming.temporary_table_name`` so a merge step can find them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from ..config import get_settings
from ..execution import DatabaseExecutor
from .chunking import chunk_attributes
from .metadata import CatalogMetadata
from .schema import BuildPlan, GroupPlan, TemporaryTableDefinition, compile_build_plan
from .statements import (
    add_primary_key_sql,
    attribute_fill_select,
    create_temporary_table_sql,
    drop_table_sql,
    entity_fill_select,
    insert_from_select_sql,
    value_fill_select,
)

log = logging.getLogger(__name__)


class BuildState(str, Enum):
    """Lifecycle of a builder instance."""

    FRESH = "fresh"
    BUILT = "built"


@dataclass(frozen=True)
class BuildResult:
    """Temporary tables produced by a build."""

    store_id: int
    changed_ids: tuple[int, ...]
    value_field_suffix: str
    entity_table: str
    tables: tuple[str, ...]
    value_tables: tuple[str, ...]
    statements_executed: int

    @property
    def is_full_rebuild(self) -> bool:
        return not self.changed_ids


def normalize_changed_ids(changed_ids: Optional[Iterable[int]]) -> tuple[int, ...]:
    """Deduplicate and sort changed ids; ``None`` means no restriction."""
    if changed_ids is None:
        return ()
    return tuple(sorted({int(i) for i in changed_ids}))


class TableBuilder:
    """Build the temporary tables of one flat index cycle.

    Usage:
        with DuckDBExecutor("catalog.duckdb") as db:
            builder = TableBuilder(EavCatalogMetadata(db), db)
            result = builder.build(store_id=1, changed_ids={10, 11})

    Args:
        metadata: Catalog metadata provider.
        executor: Connected backend. All statements of a build must run on
            the same connection, since the tables are temporary.
        chunk_size: Attributes per join statement. Defaults to the
            ``attributes_chunk_size`` setting.
    """

    def __init__(
        self,
        metadata: CatalogMetadata,
        executor: DatabaseExecutor,
        chunk_size: Optional[int] = None,
    ):
        self.metadata = metadata
        self.executor = executor
        self.chunk_size = chunk_size if chunk_size is not None else get_settings().attributes_chunk_size
        if self.chunk_size < 1:
            raise ValueError(f"Chunk size must be at least 1, got {self.chunk_size}")
        self._state = BuildState.FRESH
        self._result: Optional[BuildResult] = None
        self._statements = 0

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def result(self) -> Optional[BuildResult]:
        return self._result

    @property
    def dialect(self) -> str:
        return self.executor.dialect

    def build(
        self,
        store_id: int,
        changed_ids: Optional[Iterable[int]] = None,
        value_field_suffix: str = "_value",
    ) -> BuildResult:
        """Create and fill the temporary tables for ``store_id``.

        Only the first call does any work; later calls return the first
        result untouched. A failed build raises and leaves the builder
        ``FRESH``.

        Args:
            store_id: Store being indexed. Values are captured from the
                default scope (store 0) regardless.
            changed_ids: Entity ids to rebuild; empty or None for all.
            value_field_suffix: Suffix of label columns and label tables.

        Raises:
            ValueError: On a non-positive store id or empty suffix.
            SchemaFault: On unusable attribute metadata.
            BackendFault: On any failed statement.
        """
        if self._state is BuildState.BUILT:
            log.debug("Flat tables already built; skipping")
            return self._result

        if isinstance(store_id, bool) or not isinstance(store_id, int) or store_id < 1:
            raise ValueError(f"store_id must be a positive integer, got {store_id!r}")
        if not value_field_suffix:
            raise ValueError("value_field_suffix must be a non-empty string")

        ids = normalize_changed_ids(changed_ids)
        log.info(
            "Building flat temporary tables for store %d (%s)",
            store_id,
            f"{len(ids)} changed ids" if ids else "full rebuild",
        )

        self._statements = 0
        plan = compile_build_plan(self.metadata, value_field_suffix)

        value_tables = []
        self._create_table(plan.entity.table)
        for group in plan.groups:
            self._create_table(group.table)
            if group.value_table is not None:
                self._create_table(group.value_table)
                value_tables.append(group.value_table.name)

        # Base table is keyed after the bulk insert.
        self._fill_entity_table(plan, ids)
        self._add_primary_key(plan.entity.table.name)

        for group in plan.groups:
            self._add_primary_key(group.table.name)
            if group.value_table is not None:
                self._add_primary_key(group.value_table.name)
            self._fill_group(plan, group, ids)

        self._result = BuildResult(
            store_id=store_id,
            changed_ids=ids,
            value_field_suffix=value_field_suffix,
            entity_table=plan.entity.table.name,
            tables=tuple(plan.table_names),
            value_tables=tuple(value_tables),
            statements_executed=self._statements,
        )
        self._state = BuildState.BUILT
        log.info(
            "Built %d temporary tables in %d statements",
            len(self._result.tables),
            self._statements,
        )
        return self._result

    def _execute(self, sql: str) -> None:
        self.executor.execute(sql)
        self._statements += 1

    def _create_table(self, table: TemporaryTableDefinition) -> None:
        self._execute(drop_table_sql(table.name, self.dialect))
        self._execute(create_temporary_table_sql(table, self.dialect))
        log.debug("Created %s (%d columns)", table.name, len(table.columns))

    def _add_primary_key(self, table_name: str) -> None:
        self._execute(add_primary_key_sql(table_name, self.dialect))

    def _fill_entity_table(self, plan: BuildPlan, changed_ids: tuple[int, ...]) -> None:
        table = plan.entity.table
        select = entity_fill_select(plan.entity_table, plan.entity.attribute_columns, changed_ids)
        self._execute(insert_from_select_sql(table.name, table.column_names, select, self.dialect))

    def _fill_group(self, plan: BuildPlan, group: GroupPlan, changed_ids: tuple[int, ...]) -> None:
        chunks = chunk_attributes(group.attributes, self.chunk_size)
        log.debug("Filling %s in %d chunk(s)", group.table.name, len(chunks))

        for chunk in chunks:
            select = attribute_fill_select(
                plan.entity.table.name, group.storage_table, chunk, changed_ids
            )
            columns = [group.table.primary_key] + [name for name, _ in chunk]
            self._execute(
                insert_from_select_sql(group.table.name, columns, select, self.dialect, upsert=True)
            )

            if group.value_table is None:
                continue
            value_select, value_columns = value_fill_select(
                group.table.name,
                plan.option_value_table,
                chunk,
                plan.value_field_suffix,
                changed_ids,
            )
            if len(value_columns) > 1:
                self._execute(
                    insert_from_select_sql(
                        group.value_table.name, value_columns, value_select, self.dialect, upsert=True
                    )
                )
