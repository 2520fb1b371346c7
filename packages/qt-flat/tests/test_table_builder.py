"""Integration tests for TableBuilder against in-memory DuckDB catalogs."""

from decimal import Decimal

import pytest

from qt_flat.errors import BackendFault, SchemaFault
from qt_flat.execution.duckdb_executor import DuckDBExecutor
from qt_flat.indexer import (
    AttributeDescriptor,
    BuildState,
    ColumnSpec,
    StaticCatalogMetadata,
    TableBuilder,
)

BASE_TMP = "catalog_product_entity_tmp_indexer"
VARCHAR_TMP = "catalog_product_entity_varchar_tmp_indexer"
DECIMAL_TMP = "catalog_product_entity_decimal_tmp_indexer"
INT_TMP = "catalog_product_entity_int_tmp_indexer"
INT_VALUE_TMP = "catalog_product_entity_int_tmp_indexer_value"


def rows(db, table):
    return db.execute(f'SELECT * FROM "{table}" ORDER BY entity_id')


def column_types(db, table):
    return {r["column_name"]: r["column_type"] for r in db.execute(f'DESCRIBE "{table}"')}


# =============================================================================
# SCENARIOS
# =============================================================================

class TestChangedIds:
    """Scope restriction by changed entity ids."""

    def test_partial_rebuild(self, catalog_db, metadata):
        TableBuilder(metadata, catalog_db).build(1, {1, 2}, "_value")

        assert rows(catalog_db, VARCHAR_TMP) == [
            {"entity_id": 1, "name": "Shirt", "color": "red"},
            {"entity_id": 2, "name": "Pants", "color": None},
        ]

    def test_full_rebuild(self, catalog_db, metadata):
        TableBuilder(metadata, catalog_db).build(1, set(), "_value")

        result = rows(catalog_db, VARCHAR_TMP)
        assert [r["entity_id"] for r in result] == [1, 2, 3]
        assert [r["color"] for r in result] == ["red", None, None]

    def test_none_means_full_rebuild(self, catalog_db, metadata):
        result = TableBuilder(metadata, catalog_db).build(1, None)
        assert result.is_full_rebuild
        assert len(rows(catalog_db, BASE_TMP)) == 3

    def test_base_table_holds_exactly_changed_rows(self, catalog_db, metadata):
        TableBuilder(metadata, catalog_db).build(1, [3, 1, 3])

        assert rows(catalog_db, BASE_TMP) == [
            {"entity_id": 1, "type_id": "simple", "attribute_set_id": 4, "sku": "SKU-1"},
            {"entity_id": 3, "type_id": "configurable", "attribute_set_id": 9, "sku": "SKU-3"},
        ]

    def test_unknown_ids_give_empty_tables(self, catalog_db, metadata):
        TableBuilder(metadata, catalog_db).build(1, {404})
        assert rows(catalog_db, BASE_TMP) == []
        assert rows(catalog_db, VARCHAR_TMP) == []


class TestAttributeFill:
    """Values of the attribute group tables."""

    def test_missing_values_are_null(self, catalog_db, metadata):
        TableBuilder(metadata, catalog_db).build(1)

        assert rows(catalog_db, DECIMAL_TMP) == [
            {"entity_id": 1, "price": Decimal("9.99")},
            {"entity_id": 2, "price": Decimal("19.5")},
            {"entity_id": 3, "price": None},
        ]

    def test_only_default_scope_values(self, catalog_db, metadata):
        # Store 1 overrides color for product 1 and name for product 2.
        TableBuilder(metadata, catalog_db).build(1)

        result = {r["entity_id"]: r for r in rows(catalog_db, VARCHAR_TMP)}
        assert result[1]["color"] == "red"
        assert result[2]["name"] == "Pants"

    def test_status_column_filled(self, catalog_db, metadata):
        TableBuilder(metadata, catalog_db).build(1)

        assert rows(catalog_db, INT_TMP) == [
            {"entity_id": 1, "manufacturer": 10, "status": 1},
            {"entity_id": 2, "manufacturer": None, "status": 2},
            {"entity_id": 3, "manufacturer": 11, "status": 1},
        ]

    def test_option_labels_in_value_table(self, catalog_db, metadata):
        TableBuilder(metadata, catalog_db).build(1)

        assert rows(catalog_db, INT_VALUE_TMP) == [
            {"entity_id": 1, "manufacturer_value": "Acme"},
            {"entity_id": 2, "manufacturer_value": None},
            {"entity_id": 3, "manufacturer_value": "Globex"},
        ]

    def test_value_table_respects_changed_ids(self, catalog_db, metadata):
        TableBuilder(metadata, catalog_db).build(2, {3})
        assert rows(catalog_db, INT_VALUE_TMP) == [{"entity_id": 3, "manufacturer_value": "Globex"}]


class TestTableShapes:
    """Columns, types, keys and label tables."""

    def test_group_columns(self, catalog_db, metadata):
        TableBuilder(metadata, catalog_db).build(1)

        assert catalog_db.get_columns(VARCHAR_TMP) == ["entity_id", "name", "color"]
        assert catalog_db.get_columns(INT_TMP) == ["entity_id", "manufacturer", "status"]
        assert catalog_db.get_columns(BASE_TMP) == ["entity_id", "type_id", "attribute_set_id", "sku"]

    def test_types_from_specs(self, make_catalog_db, attributes):
        db = make_catalog_db()
        metadata = StaticCatalogMetadata(
            entity_table="catalog_product_entity",
            attributes=attributes,
            flat_column_overrides={"price": ColumnSpec("DECIMAL", "10,2")},
        )
        TableBuilder(metadata, db).build(1)

        assert column_types(db, DECIMAL_TMP)["price"] == "DECIMAL(10,2)"
        assert column_types(db, VARCHAR_TMP)["name"] == "VARCHAR"
        assert column_types(db, INT_TMP)["status"] == "INTEGER"

    def test_every_table_keyed_on_entity_id(self, catalog_db, metadata):
        result = TableBuilder(metadata, catalog_db).build(1)

        for table in result.tables:
            with pytest.raises(BackendFault):
                catalog_db.execute(f'INSERT INTO "{table}" (entity_id) VALUES (1)')

    def test_no_value_table_without_option_labels(self, make_catalog_db, attributes):
        db = make_catalog_db()
        plain = [
            AttributeDescriptor(a.attribute_id, a.code, a.backend_table, a.backend_type, a.column,
                                has_option_labels=False, used_in_flat=a.used_in_flat)
            for a in attributes
        ]
        metadata = StaticCatalogMetadata(entity_table="catalog_product_entity", attributes=plain)
        result = TableBuilder(metadata, db).build(1)

        assert result.value_tables == ()
        with pytest.raises(BackendFault):
            db.get_columns(INT_VALUE_TMP)

    def test_result_lists_tables(self, catalog_db, metadata):
        result = TableBuilder(metadata, catalog_db).build(1, {1}, "_value")

        assert result.entity_table == BASE_TMP
        assert result.tables == (BASE_TMP, VARCHAR_TMP, DECIMAL_TMP, INT_TMP, INT_VALUE_TMP)
        assert result.value_tables == (INT_VALUE_TMP,)
        assert result.changed_ids == (1,)

    def test_stale_tables_are_replaced(self, catalog_db, metadata):
        catalog_db.execute(f'CREATE TEMPORARY TABLE "{VARCHAR_TMP}" (junk INTEGER)')
        catalog_db.execute(f'INSERT INTO "{VARCHAR_TMP}" VALUES (1)')

        TableBuilder(metadata, catalog_db).build(1, {2})

        assert rows(catalog_db, VARCHAR_TMP) == [{"entity_id": 2, "name": "Pants", "color": None}]


class TestChunking:
    """Chunk size changes statement count, never contents."""

    def test_chunk_size_is_transparent(self, make_catalog_db, metadata):
        narrow_db, wide_db = make_catalog_db(), make_catalog_db()

        narrow = TableBuilder(metadata, narrow_db, chunk_size=1).build(1, {1, 2, 3})
        wide = TableBuilder(metadata, wide_db, chunk_size=59).build(1, {1, 2, 3})

        assert narrow.tables == wide.tables
        for table in narrow.tables:
            assert rows(narrow_db, table) == rows(wide_db, table)
        assert narrow.statements_executed > wide.statements_executed

    def test_chunk_size_from_settings(self, catalog_db, metadata, monkeypatch):
        from qt_flat.config import get_settings

        monkeypatch.setenv("QT_FLAT_ATTRIBUTES_CHUNK_SIZE", "2")
        get_settings.cache_clear()
        try:
            assert TableBuilder(metadata, catalog_db).chunk_size == 2
        finally:
            get_settings.cache_clear()

    def test_invalid_chunk_size(self, catalog_db, metadata):
        with pytest.raises(ValueError):
            TableBuilder(metadata, catalog_db, chunk_size=0)


# =============================================================================
# LIFECYCLE AND FAILURES
# =============================================================================

class TestSingleShot:
    """At-most-once execution per builder instance."""

    def test_second_build_is_noop(self, catalog_db, metadata, monkeypatch):
        builder = TableBuilder(metadata, catalog_db)
        first = builder.build(1, {1, 2})
        before = rows(catalog_db, VARCHAR_TMP)
        assert builder.state is BuildState.BUILT

        calls = []
        monkeypatch.setattr(catalog_db, "execute", lambda sql, params=(): calls.append(sql))
        second = builder.build(1, set(), "_other")

        assert second is first
        assert calls == []
        monkeypatch.undo()
        assert rows(catalog_db, VARCHAR_TMP) == before
        assert builder.state is BuildState.BUILT

    def test_fresh_builder_has_no_result(self, catalog_db, metadata):
        builder = TableBuilder(metadata, catalog_db)
        assert builder.state is BuildState.FRESH
        assert builder.result is None


class TestFailures:
    """Faults propagate and leave the builder unbuilt."""

    @pytest.mark.parametrize("store_id", [0, -1, "1", True])
    def test_invalid_store_id(self, catalog_db, metadata, store_id):
        with pytest.raises(ValueError):
            TableBuilder(metadata, catalog_db).build(store_id)

    def test_empty_suffix(self, catalog_db, metadata):
        with pytest.raises(ValueError):
            TableBuilder(metadata, catalog_db).build(1, (), "")

    def test_schema_fault_before_any_statement(self, catalog_db, monkeypatch):
        metadata = StaticCatalogMetadata(
            entity_table="catalog_product_entity",
            attributes=[AttributeDescriptor(71, "name", "catalog_product_entity_varchar", "varchar")],
        )
        calls = []
        monkeypatch.setattr(catalog_db, "execute", lambda sql, params=(): calls.append(sql))
        builder = TableBuilder(metadata, catalog_db)

        with pytest.raises(SchemaFault):
            builder.build(1)
        assert calls == []
        assert builder.state is BuildState.FRESH

    def test_backend_fault_propagates(self, metadata):
        with DuckDBExecutor(":memory:") as empty_db:
            builder = TableBuilder(metadata, empty_db)
            with pytest.raises(BackendFault) as excinfo:
                builder.build(1)

        assert excinfo.value.sql is not None
        assert "catalog_product_entity" in excinfo.value.sql
        assert builder.state is BuildState.FRESH
        assert builder.result is None

    def test_retry_after_failure_rebuilds(self, catalog_db, metadata):
        catalog_db.execute("ALTER TABLE catalog_product_entity_decimal RENAME TO decimal_away")
        builder = TableBuilder(metadata, catalog_db)
        with pytest.raises(BackendFault):
            builder.build(1)

        catalog_db.execute("ALTER TABLE decimal_away RENAME TO catalog_product_entity_decimal")
        result = builder.build(1)

        assert builder.state is BuildState.BUILT
        assert len(rows(catalog_db, DECIMAL_TMP)) == 3
        assert result.tables[-1] == INT_VALUE_TMP
