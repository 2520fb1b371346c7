"""Configuration for the flat-table rebuild engine."""

from functools import lru_cache
from pydantic_settings import BaseSettings

# Stays below the usual 61-table join ceiling once the base table is counted.
ATTRIBUTES_CHUNK_SIZE = 59


class Settings(BaseSettings):
    """Flat indexer settings loaded from environment.

    Every field can be overridden with a ``QT_FLAT_`` prefixed variable,
    e.g. ``QT_FLAT_ATTRIBUTES_CHUNK_SIZE=20``.
    """

    # Backend
    database_dsn: str = ":memory:"

    # Catalog layout
    entity_table: str = "catalog_product_entity"
    attribute_table: str = "eav_attribute"
    option_value_table: str = "eav_attribute_option_value"
    entity_type_id: int = 4

    # Build tuning (shared with sibling reindex actions)
    attributes_chunk_size: int = ATTRIBUTES_CHUNK_SIZE
    value_field_suffix: str = "_value"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "QT_FLAT_"
        env_file = ".env"

    @property
    def is_duckdb(self) -> bool:
        """Check if the configured DSN points at DuckDB."""
        dsn = self.database_dsn.lower()
        return (
            dsn == ":memory:"
            or dsn.startswith("duckdb://")
            or dsn.endswith(".duckdb")
            or dsn.endswith(".db")
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
