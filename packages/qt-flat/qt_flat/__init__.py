"""QueryTorque Flat: EAV catalog to flat table rebuild engine.

Usage:
    from qt_flat import TableBuilder, StaticCatalogMetadata
    from qt_flat.execution import create_executor_from_dsn

    with create_executor_from_dsn("catalog.duckdb") as db:
        builder = TableBuilder(metadata, db)
        result = builder.build(store_id=1, changed_ids={1, 2})
        print(result.tables)
"""

from .errors import BackendFault, FlatIndexerError, SchemaFault
from .indexer import (
    AttributeDescriptor,
    BuildResult,
    BuildState,
    ColumnSpec,
    EavCatalogMetadata,
    StaticCatalogMetadata,
    TableBuilder,
)

__version__ = "0.1.0"

__all__ = [
    "BackendFault",
    "FlatIndexerError",
    "SchemaFault",
    "AttributeDescriptor",
    "BuildResult",
    "BuildState",
    "ColumnSpec",
    "EavCatalogMetadata",
    "StaticCatalogMetadata",
    "TableBuilder",
]
