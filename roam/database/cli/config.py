"""
Configuration Commands
-----------------------

Inspect and bootstrap database credentials.

Commands:
    - show: Show the resolved credentials and which source produced them
    - init: Write a template ~/.roam/database.properties

Usage:
    # Show resolved configuration
    roamdb config show

    # Create the template file
    roamdb config init
"""
import click

from roam.core.exceptions import ConfigurationError
from roam.core.logging_manager import handle_cli_error
from roam.database.config import write_sample_config
from . import get_credentials


@click.group()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Database credential configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Show resolved database configuration (password masked)."""
    credentials = get_credentials(ctx)
    masked = credentials.masked()

    click.echo("\n🔧 Database Configuration")
    click.echo("=" * 50)
    click.echo(f"Source:   {masked['source']}")
    click.echo(f"Driver:   {masked['driver']}")
    click.echo(f"URL:      {masked['url']}")
    click.echo(f"Username: {masked['username']}")
    click.echo(f"Password: {masked['password'] or '(empty)'}")


@config.command("init")
@click.option(
    "--path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Target file (default: ~/.roam/database.properties)",
)
@click.pass_context
def config_init(ctx, path):
    """Create a template properties file if none exists."""
    try:
        created = write_sample_config(path=path, logger=ctx.obj["logger"])
        if created is None:
            click.echo("ℹ️  Configuration file already exists, left unchanged")
        else:
            click.echo(f"✅ Created configuration file: {created}")
            click.echo("💡 Update db.password before using it in production")

    except ConfigurationError as e:
        handle_cli_error(ctx, e, "config_init", additional_context={"path": path})
