"""prefix-autoload CLI - inspect and exercise namespace mappings."""

from __future__ import annotations

import json
import logging
import sys
from typing import cast

import click
from rich.table import Table

from .bootstrap import bootstrap
from .console import console
from .console import error_console
from .logging_setup import init_json_logging
from .settings import AutoloadSettings
from .settings import Scope
from .settings import SettingsError
from .utils.error_format import escape_markup
from .utils.error_format import format_error_message

logger = logging.getLogger(__name__)

_SCOPE_LABELS = {
    "local": "Local (.prefix-autoload/settings.local.yaml)",
    "project": "Project (.prefix-autoload/settings.yaml)",
    "global": "Global (~/.prefix-autoload/settings.yaml)",
}


def scope_options(verb: str):
    """Attach the mutually exclusive --local/--project/--global flags."""

    def decorator(f):
        f = click.option("--global", "scope_flag", flag_value="global", help=f"{verb} user settings")(f)
        f = click.option("--project", "scope_flag", flag_value="project", help=f"{verb} project settings (default)")(f)
        f = click.option("--local", "scope_flag", flag_value="local", help=f"{verb} local settings")(f)
        return f

    return decorator


@click.group(invoke_without_command=True)
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write JSONL logs to this file")
@click.option("--log-level", default=None, help="Log level for --log-file (default: INFO)")
@click.pass_context
def cli(ctx: click.Context, log_file: str | None, log_level: str | None):
    """Map namespace prefixes to directories and load files by name."""
    if log_file:
        init_json_logging(log_file, log_level)

    if ctx.invoked_subcommand is None:
        click.echo("\n" + ctx.get_help())
        ctx.exit()


@cli.command("namespaces")
@click.option("--json", "as_json", is_flag=True, help="Print the prefix table as JSON")
def list_namespaces(as_json: bool):
    """Show the effective prefix table in search order."""
    loader = bootstrap(settings=AutoloadSettings())
    prefixes = loader.prefixes

    if as_json:
        click.echo(json.dumps(prefixes, indent=2))
        return

    if not prefixes:
        console.print("[dim]No namespaces registered[/dim]")
        return

    table = Table(title="Namespaces", show_header=True, header_style="bold cyan")
    table.add_column("Prefix", style="green")
    table.add_column("Order", justify="right", style="yellow")
    table.add_column("Directory", style="magenta")

    for prefix, directories in prefixes.items():
        for index, directory in enumerate(directories, start=1):
            table.add_row(prefix if index == 1 else "", str(index), escape_markup(directory))

    console.print(table)


@cli.command("resolve")
@click.argument("name")
@click.option("--no-load", is_flag=True, help="Only locate the file, do not execute it")
def resolve_cmd(name: str, no_load: bool):
    """Resolve NAME (e.g. Core.Autoloader) to its file and load it."""
    loader = bootstrap(settings=AutoloadSettings())

    try:
        path = loader.locate(name) if no_load else loader.resolve(name)
    except Exception as e:
        logger.debug(f"Loading {name} failed", exc_info=True)
        error_console.print(f"[red]Error loading {escape_markup(name)}:[/red] {escape_markup(format_error_message(e))}")
        sys.exit(2)

    if path is None:
        error_console.print(f"[yellow]unresolved[/yellow] {escape_markup(name)}")
        sys.exit(1)

    click.echo(path)


@cli.command("add")
@click.argument("prefix")
@click.argument("directory")
@click.option("--prepend", is_flag=True, help="Search this directory before existing ones")
@scope_options("Store in")
def add_cmd(prefix: str, directory: str, prepend: bool, scope_flag: str | None):
    """Map PREFIX to DIRECTORY in settings."""
    scope = cast(Scope, scope_flag or "project")
    try:
        AutoloadSettings().add_namespace(prefix, directory, scope=scope, prepend=prepend)
    except SettingsError as e:
        error_console.print(f"[red]Error:[/red] {escape_markup(format_error_message(e, include_type=False))}")
        sys.exit(1)

    console.print(f"[green]✓ Added namespace[/green] {escape_markup(prefix)} -> {escape_markup(directory)}")
    console.print(f"  Scope: {_SCOPE_LABELS[scope]}")


@cli.command("remove")
@click.argument("prefix")
@scope_options("Remove from")
def remove_cmd(prefix: str, scope_flag: str | None):
    """Remove PREFIX from settings."""
    scope = cast(Scope, scope_flag or "project")
    try:
        removed = AutoloadSettings().remove_namespace(prefix, scope=scope)
    except SettingsError as e:
        error_console.print(f"[red]Error:[/red] {escape_markup(format_error_message(e, include_type=False))}")
        sys.exit(1)

    if not removed:
        console.print(f"[yellow]Namespace {escape_markup(prefix)} not found in {scope} settings[/yellow]")
        return

    console.print(f"[green]✓ Removed namespace[/green] {escape_markup(prefix)}")
    console.print(f"  Scope: {_SCOPE_LABELS[scope]}")


def main():
    cli()


if __name__ == "__main__":
    main()
