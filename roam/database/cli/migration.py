"""
Migration Management Commands
------------------------------

Versioned schema migration commands.

Commands:
    - apply: Bring the schema up to date
    - validate: Compare applied history with local scripts
    - repair: Remove failed history rows and realign checksums
    - info: Show applied, failed and pending migrations

Usage:
    # Apply pending migrations
    roamdb migration apply

    # Apply with a time budget
    roamdb migration apply --timeout 30

    # Show migration status
    roamdb migration info
"""
import click

from roam.core.exceptions import DatabaseError, MigrationFailedError
from roam.core.logging_manager import handle_cli_error
from . import get_credentials, get_runner


@click.group()
@click.pass_context
def migration(ctx: click.Context) -> None:
    """Database migration management."""
    pass


@migration.command("apply")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Time budget in seconds for the whole run",
)
@click.pass_context
def migration_apply(ctx, timeout):
    """Apply all pending migrations."""
    click.echo("⬆️  Applying database migrations...")
    runner = get_runner(ctx)

    if not runner.apply(get_credentials(ctx), timeout=timeout):
        handle_cli_error(
            ctx,
            MigrationFailedError("Database migration failed. See logs for details."),
            "migration_apply",
            additional_context={"timeout": timeout},
        )

    result = runner.last_result
    if result.baselined:
        click.echo("📌 Existing schema baselined")
    if result.repaired:
        click.echo("🔧 Schema history repaired")
    click.echo(f"✅ Migrations executed: {result.migrations_executed}")
    click.echo(f"Current version: {result.current_version or 'None'}")


@migration.command("validate")
@click.pass_context
def migration_validate(ctx):
    """Validate applied migrations against local scripts."""
    if get_runner(ctx).validate(get_credentials(ctx)):
        click.echo("✅ Schema history is consistent")
        return

    click.echo("❌ Schema history does not match local migrations", err=True)
    click.echo("💡 Run: roamdb migration repair", err=True)
    ctx.exit(1)


@migration.command("repair")
@click.pass_context
def migration_repair(ctx):
    """Repair the schema history table."""
    click.echo("🔧 Repairing schema history...")
    if get_runner(ctx).repair(get_credentials(ctx)):
        click.echo("✅ Schema history repaired")
        return

    click.echo("❌ Repair failed. See logs for details.", err=True)
    ctx.exit(1)


@migration.command("info")
@click.pass_context
def migration_info(ctx):
    """Show applied, failed and pending migrations."""
    try:
        records = get_runner(ctx).info(get_credentials(ctx))

        click.echo("\n📜 Migration History")
        click.echo("=" * 70)

        if not records:
            click.echo("  No migrations found")
            return

        click.echo(f"  {'Version':<10} {'State':<9} {'Installed on':<26} Description")
        for record in records:
            installed = record.installed_on.isoformat(timespec="seconds") if record.installed_on else ""
            click.echo(
                f"  {str(record.version):<10} {record.state.value:<9} "
                f"{installed:<26} {record.description}"
            )

    except DatabaseError as e:
        handle_cli_error(ctx, e, "migration_info")
