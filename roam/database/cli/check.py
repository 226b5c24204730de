"""
Bootstrap Check Command
------------------------

Run the full startup chain the application runs: resolve credentials,
migrate, build the connection factory, open one handle and shut down.

Usage:
    roamdb check
    roamdb check --timeout 10
"""
import click
from sqlalchemy import text

from roam.core.exceptions import DatabaseError
from roam.core.logging_manager import handle_cli_error
from roam.database.manager import ConnectionFactoryManager
from . import get_resolver, get_runner


@click.command("check")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Time budget in seconds for initialization",
)
@click.pass_context
def check(ctx, timeout):
    """Bootstrap the database end to end and run a probe query."""
    manager = ConnectionFactoryManager(
        resolver=get_resolver(ctx),
        runner=get_runner(ctx),
        logger=ctx.obj["logger"],
    )

    try:
        click.echo("🔍 Bootstrapping database...")
        manager.get_factory(timeout=timeout)

        with manager.handle_scope() as session:
            session.execute(text("SELECT 1")).scalar_one()

        result = manager.migration_result
        click.echo(f"✅ Database ready ({manager.credentials.source} configuration)")
        if result is not None:
            click.echo(f"Migrations executed: {result.migrations_executed}")
            click.echo(f"Current version: {result.current_version or 'None'}")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "check", additional_context={"timeout": timeout})
    finally:
        manager.shutdown()
