#!/usr/bin/env python3
"""
Roam Database Management CLI
-----------------------------

Command-line interface over the persistence bootstrap pipeline.

Command Structure:
    - Configuration (config show, config init)
    - Migration Management (migration apply/validate/repair/info)
    - End-to-end bootstrap check (check)

Usage:
    # Get general help
    roamdb --help

    # Show which credential source is in effect
    roamdb config show

    # Bring the schema up to date
    roamdb migration apply
"""
import logging
from pathlib import Path

import click

from roam.core.logging_manager import setup_logger
from roam.core.paths import MIGRATIONS_DIR, default_log_dir
from roam.database.config import ConfigResolver, ConnectionCredentials
from roam.database.migrations import MigrationRunner


@click.group()
@click.option(
    "--migrations-dir",
    type=click.Path(),
    default=str(MIGRATIONS_DIR),
    help="Directory holding V<version>__<description> scripts",
)
@click.option(
    "--log-dir",
    type=click.Path(),
    default=None,
    help="Path to log directory (default: ~/.roam/logs)",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show detailed errors and progress",
)
@click.pass_context
def cli(ctx, migrations_dir, log_dir, verbose):
    """Roam Database Management CLI"""

    # Alembic's own INFO logging is noise next to ours
    logging.getLogger("alembic").setLevel(logging.WARNING)

    log_dir = Path(log_dir) if log_dir else default_log_dir()

    ctx.ensure_object(dict)
    ctx.obj["migrations_dir"] = Path(migrations_dir)
    ctx.obj["log_dir"] = log_dir
    ctx.obj["verbose"] = verbose
    ctx.obj["logger"] = setup_logger(log_dir, "roamdb", verbose=verbose)


def get_resolver(ctx) -> ConfigResolver:
    if "resolver" not in ctx.obj:
        ctx.obj["resolver"] = ConfigResolver(logger=ctx.obj["logger"])
    return ctx.obj["resolver"]


def get_credentials(ctx) -> ConnectionCredentials:
    """Resolve credentials once per invocation."""
    if "credentials" not in ctx.obj:
        ctx.obj["credentials"] = get_resolver(ctx).resolve()
    return ctx.obj["credentials"]


def get_runner(ctx) -> MigrationRunner:
    if "runner" not in ctx.obj:
        ctx.obj["runner"] = MigrationRunner(
            migrations_dir=ctx.obj["migrations_dir"],
            logger=ctx.obj["logger"],
        )
    return ctx.obj["runner"]


# Import and register command modules
# These imports must come after CLI group definition
from .config import config  # noqa: E402
from .migration import migration  # noqa: E402
from .check import check  # noqa: E402

cli.add_command(config)
cli.add_command(migration)
cli.add_command(check)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
