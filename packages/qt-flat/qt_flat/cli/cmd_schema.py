"""qt-flat schema: show the temporary tables a build would create."""

from __future__ import annotations

from typing import Optional

import click
from rich.table import Table

from ..config import get_settings
from ..errors import FlatIndexerError
from ..indexer import EavCatalogMetadata, compile_build_plan
from ._common import console, open_executor


@click.command()
@click.option("--dsn", default=None, help="Catalog database (defaults to QT_FLAT_DATABASE_DSN).")
@click.option("--suffix", default=None, help="Label column suffix (defaults to QT_FLAT_VALUE_FIELD_SUFFIX).")
def schema(dsn: Optional[str], suffix: Optional[str]) -> None:
    """Compile the catalog schema and print the temporary table shapes."""
    settings = get_settings()
    suffix = suffix or settings.value_field_suffix

    executor = open_executor(dsn)
    try:
        plan = compile_build_plan(EavCatalogMetadata(executor, settings), suffix)
    except FlatIndexerError as e:
        raise click.ClickException(str(e))
    finally:
        executor.close()

    table = Table(title="Flat temporary tables", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Column")
    table.add_column("Type")

    tables = [plan.entity.table]
    for group in plan.groups:
        tables.append(group.table)
        if group.value_table is not None:
            tables.append(group.value_table)

    for definition in tables:
        for i, column in enumerate(definition.columns):
            table.add_row(definition.name if i == 0 else "", column.name, column.spec.type_sql)

    console.print(table)
