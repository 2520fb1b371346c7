"""Temporary table naming."""

TEMPORARY_TABLE_SUFFIX = "_tmp_indexer"


def temporary_table_name(table_name: str) -> str:
    """Return the temporary table name for a storage table."""
    return f"{table_name}{TEMPORARY_TABLE_SUFFIX}"


def value_table_name(table_name: str, value_field_suffix: str) -> str:
    """Return the label (value) table name paired with a storage table."""
    return f"{temporary_table_name(table_name)}{value_field_suffix}"
