"""Flat index table builder for EAV product catalogs."""

from .attributes import AttributeDescriptor, ColumnSpec
from .chunking import chunk_attributes
from .metadata import (
    CatalogMetadata,
    EavCatalogMetadata,
    StaticCatalogMetadata,
    TableSchema,
)
from .naming import temporary_table_name, value_table_name
from .schema import (
    BuildPlan,
    GroupPlan,
    TemporaryTableDefinition,
    compile_build_plan,
    compile_table_schema,
    compile_temporary_table,
)
from .table_builder import BuildResult, BuildState, TableBuilder

__all__ = [
    "AttributeDescriptor",
    "ColumnSpec",
    "chunk_attributes",
    "CatalogMetadata",
    "EavCatalogMetadata",
    "StaticCatalogMetadata",
    "TableSchema",
    "temporary_table_name",
    "value_table_name",
    "BuildPlan",
    "GroupPlan",
    "TemporaryTableDefinition",
    "compile_build_plan",
    "compile_table_schema",
    "compile_temporary_table",
    "BuildResult",
    "BuildState",
    "TableBuilder",
]
