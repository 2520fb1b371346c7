"""qt-flat build: run one flat table build and report the produced tables."""

from __future__ import annotations

from typing import Optional, Tuple

import click
from rich.table import Table

from ..config import get_settings
from ..errors import FlatIndexerError
from ..indexer import EavCatalogMetadata, TableBuilder
from ._common import console, open_executor


@click.command()
@click.option("--dsn", default=None, help="Catalog database (defaults to QT_FLAT_DATABASE_DSN).")
@click.option("--store-id", type=int, required=True, help="Store being indexed.")
@click.option("--id", "entity_ids", type=int, multiple=True, help="Changed entity id (repeatable). Omit for a full rebuild.")
@click.option("--suffix", default=None, help="Label column suffix (defaults to QT_FLAT_VALUE_FIELD_SUFFIX).")
@click.option("--chunk-size", type=click.IntRange(min=1), default=None, help="Attributes per join statement.")
@click.pass_context
def build(
    ctx: click.Context,
    dsn: Optional[str],
    store_id: int,
    entity_ids: Tuple[int, ...],
    suffix: Optional[str],
    chunk_size: Optional[int],
) -> None:
    """Build the flat index temporary tables on a fresh connection.

    Temporary tables live only as long as the connection, so this command
    is a dry run of the build: it reports what was produced, then closes.
    """
    settings = get_settings()
    suffix = suffix or settings.value_field_suffix

    executor = open_executor(dsn)
    try:
        builder = TableBuilder(
            EavCatalogMetadata(executor, settings),
            executor,
            chunk_size=chunk_size if chunk_size is not None else settings.attributes_chunk_size,
        )
        result = builder.build(store_id, entity_ids, suffix)

        table = Table(title=f"Store {store_id}", show_header=True, header_style="bold")
        table.add_column("Temporary table")
        table.add_column("Rows", justify="right")
        for name in result.tables:
            rows = executor.fetch_scalar(f'SELECT COUNT(*) AS n FROM "{name}"')
            table.add_row(name, str(rows))
    except (FlatIndexerError, ValueError) as e:
        raise click.ClickException(str(e))
    finally:
        executor.close()

    if not (ctx.obj or {}).get("quiet"):
        console.print(table)
    mode = "full rebuild" if result.is_full_rebuild else f"{len(result.changed_ids)} changed ids"
    console.print(f"[green]Built {len(result.tables)} tables ({mode}, {result.statements_executed} statements)[/green]")
