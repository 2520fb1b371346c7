"""Pytest configuration and fixtures for qt-flat tests."""

import pytest

from qt_flat.execution.duckdb_executor import DuckDBExecutor
from qt_flat.indexer import AttributeDescriptor, ColumnSpec, StaticCatalogMetadata

ENTITY_TABLE = "catalog_product_entity"
VARCHAR_TABLE = "catalog_product_entity_varchar"
DECIMAL_TABLE = "catalog_product_entity_decimal"
INT_TABLE = "catalog_product_entity_int"


# =============================================================================
# CATALOG DATA
# =============================================================================

# Products 1..3. "color" is set for product 1 only; store 1 overrides it.
CATALOG_SQL = """
CREATE TABLE catalog_product_entity (
    entity_id INTEGER PRIMARY KEY,
    type_id VARCHAR(32),
    attribute_set_id INTEGER,
    sku VARCHAR(64)
);
INSERT INTO catalog_product_entity VALUES
    (1, 'simple', 4, 'SKU-1'),
    (2, 'simple', 4, 'SKU-2'),
    (3, 'configurable', 9, 'SKU-3');

CREATE TABLE catalog_product_entity_varchar (
    value_id INTEGER, entity_id INTEGER, attribute_id INTEGER, store_id INTEGER, value VARCHAR(255)
);
INSERT INTO catalog_product_entity_varchar VALUES
    (1, 1, 71, 0, 'Shirt'),
    (2, 2, 71, 0, 'Pants'),
    (3, 3, 71, 0, 'Hat'),
    (4, 2, 71, 1, 'Hose'),
    (5, 1, 92, 0, 'red'),
    (6, 1, 92, 1, 'crimson');

CREATE TABLE catalog_product_entity_decimal (
    value_id INTEGER, entity_id INTEGER, attribute_id INTEGER, store_id INTEGER, value DECIMAL(12, 4)
);
INSERT INTO catalog_product_entity_decimal VALUES
    (1, 1, 75, 0, 9.99),
    (2, 2, 75, 0, 19.5);

CREATE TABLE catalog_product_entity_int (
    value_id INTEGER, entity_id INTEGER, attribute_id INTEGER, store_id INTEGER, value INTEGER
);
INSERT INTO catalog_product_entity_int VALUES
    (1, 1, 81, 0, 10),
    (2, 3, 81, 0, 11),
    (3, 1, 96, 0, 1),
    (4, 2, 96, 0, 2),
    (5, 3, 96, 0, 1);

CREATE TABLE eav_attribute_option_value (
    value_id INTEGER, option_id INTEGER, store_id INTEGER, value VARCHAR(255)
);
INSERT INTO eav_attribute_option_value VALUES
    (1, 10, 0, 'Acme'),
    (2, 11, 0, 'Globex'),
    (3, 10, 1, 'Acme GmbH');

CREATE TABLE eav_attribute (
    attribute_id INTEGER,
    entity_type_id INTEGER,
    attribute_code VARCHAR,
    backend_type VARCHAR,
    backend_table VARCHAR,
    frontend_input VARCHAR,
    used_in_flat BOOLEAN
);
INSERT INTO eav_attribute VALUES
    (71, 4, 'name', 'varchar', NULL, 'text', true),
    (74, 4, 'sku', 'static', NULL, 'text', true),
    (75, 4, 'price', 'decimal', NULL, 'price', true),
    (81, 4, 'manufacturer', 'int', NULL, 'select', true),
    (92, 4, 'color', 'varchar', NULL, 'text', true),
    (96, 4, 'status', 'int', NULL, 'boolean', false),
    (3, 3, 'name', 'varchar', 'catalog_category_entity_varchar', 'text', true);
"""


def catalog_attributes() -> list[AttributeDescriptor]:
    return [
        AttributeDescriptor(74, "sku", ENTITY_TABLE, "static", ColumnSpec("VARCHAR", 64)),
        AttributeDescriptor(71, "name", VARCHAR_TABLE, "varchar"),
        AttributeDescriptor(92, "color", VARCHAR_TABLE, "varchar"),
        AttributeDescriptor(75, "price", DECIMAL_TABLE, "decimal"),
        AttributeDescriptor(81, "manufacturer", INT_TABLE, "int", has_option_labels=True),
        AttributeDescriptor(96, "status", INT_TABLE, "int", used_in_flat=False),
    ]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def make_catalog_db():
    """Factory for seeded in-memory DuckDB catalogs; all are closed on teardown."""
    opened = []

    def _make() -> DuckDBExecutor:
        db = DuckDBExecutor(":memory:")
        db.connect()
        db.execute_script(CATALOG_SQL)
        opened.append(db)
        return db

    yield _make
    for db in opened:
        db.close()


@pytest.fixture
def catalog_db(make_catalog_db) -> DuckDBExecutor:
    """A seeded in-memory catalog."""
    return make_catalog_db()


@pytest.fixture
def metadata() -> StaticCatalogMetadata:
    """Static metadata matching the seeded catalog."""
    return StaticCatalogMetadata(entity_table=ENTITY_TABLE, attributes=catalog_attributes())


@pytest.fixture
def catalog_file(tmp_path) -> str:
    """A seeded DuckDB catalog on disk, for commands that open their own connection."""
    path = str(tmp_path / "catalog.duckdb")
    with DuckDBExecutor(path) as db:
        db.execute_script(CATALOG_SQL)
    return path


@pytest.fixture
def attributes() -> list[AttributeDescriptor]:
    """Descriptors of the seeded catalog, status included."""
    return catalog_attributes()
