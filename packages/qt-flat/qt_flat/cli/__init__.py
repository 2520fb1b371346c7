"""QueryTorque Flat CLI: build flat index temporary tables.

Usage: qt-flat <command> [options]
"""

from __future__ import annotations

import click


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-essential output.")
@click.version_option(package_name="qt-flat")
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool) -> None:
    """QueryTorque Flat: EAV catalog flat table builder."""
    import logging

    from ..config import get_settings

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s %(message)s")
    elif quiet:
        logging.basicConfig(level=logging.WARNING)
    else:
        logging.basicConfig(level=get_settings().log_level.upper(), format="%(message)s")


def _register_commands() -> None:
    """Import and register all sub-commands."""
    from .cmd_build import build
    from .cmd_schema import schema

    main.add_command(build)
    main.add_command(schema)


_register_commands()
