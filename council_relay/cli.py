"""Council Relay CLI — command line interface."""

import asyncio
import logging

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import REQUIRED_SETTINGS, ConfigError, RelaySettings, load_settings
from .identities import IdentityResolver

console = Console()

_SECRET_SUFFIXES = ("_token",)


def _mask(name: str, value) -> str:
    if value in (None, ""):
        return "[dim]not set[/dim]"
    if name.endswith(_SECRET_SUFFIXES):
        text = str(value)
        return f"{text[:4]}…{text[-4:]}" if len(text) > 12 else "****"
    return str(value)


@click.group()
@click.version_option(version=__version__, prog_name="council-relay")
def cli():
    """Council Relay — live Council discussions to Telegram"""


@cli.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def start(debug):
    """Start relaying the Council stream."""
    from .main import run, setup_logging

    try:
        settings = load_settings()
    except ConfigError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise SystemExit(1)

    setup_logging(settings.log_file, level=logging.DEBUG if debug else logging.INFO)
    console.print("[bold blue]Starting Council Relay...[/bold blue]")
    asyncio.run(run(settings))


@cli.command(name="config")
def show_config():
    """Show resolved configuration (secrets masked)."""
    settings = RelaySettings()

    table = Table(title="Council Relay configuration")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for name in RelaySettings.model_fields:
        value = getattr(settings, name)
        if name in REQUIRED_SETTINGS and not value:
            table.add_row(name, "[bold red]missing (required)[/bold red]")
        else:
            table.add_row(name, _mask(name, value))
    console.print(table)

    identities = IdentityResolver(settings)
    configured = identities.configured()
    console.print()
    console.print("[bold cyan]Council members[/bold cyan]")
    for identity in identities:
        via = "[green]own bot[/green]" if configured[identity.bot_id] else "[yellow]main bot[/yellow]"
        console.print(f"  {identity.bot_id:10s} {identity.name:8s} {identity.role:18s} {via}")


def main():
    cli()


if __name__ == "__main__":
    main()
