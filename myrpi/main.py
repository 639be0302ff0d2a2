"""
myrpi — CLI entrypoint.

Usage:
    sudo myrpi install [TARGET]
    sudo myrpi uninstall [TARGET]
    myrpi status
    myrpi list
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from myrpi import __version__
from myrpi.core.observability.logging_config import resolve_level, setup_logging

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="myrpi")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to the settings file (default: $MYRPI_CONFIG or /etc/myrpi/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """myrpi — install and remove developer tools on a Raspberry Pi."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get("MYRPI_LOG_LEVEL")),
        log_file=os.environ.get("MYRPI_LOG_FILE"),
        log_file_level=os.environ.get("MYRPI_LOG_FILE_LEVEL"),
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show which components are present on this host."""
    from myrpi.core.config.loader import ConfigError, load_settings
    from myrpi.core.context import resolve_actual_user
    from myrpi.core.services.provision.context import create_context
    from myrpi.core.services.provision.data.catalog import build_catalog
    from myrpi.core.services.provision.detection.presence import presence_report

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)

    catalog = build_catalog(settings)
    exec_ctx = create_context(settings, resolve_actual_user())
    rows = presence_report(catalog.all_components(), exec_ctx)

    if as_json:
        click.echo(json.dumps({"user": exec_ctx.user.name, "components": rows}, indent=2))
        return

    click.secho(f"\nmyrpi components for {exec_ctx.user.name}", fg="cyan", bold=True)
    markers = {"present": ("✓", "green"), "partial": ("◐", "yellow"), "absent": ("·", None)}
    width = max(len(row["id"]) for row in rows)
    for row in rows:
        marker, color = markers[row["state"]]
        click.secho(f"  {marker} {row['id'].ljust(width)}  {row['state']}", fg=color)


@cli.command("list")
@click.pass_context
def list_components(ctx: click.Context) -> None:
    """List the catalog with menu numbers."""
    from myrpi.core.config.loader import ConfigError, load_settings
    from myrpi.core.services.provision.data.catalog import build_catalog

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)

    catalog = build_catalog(settings)
    width = max(len(cid) for cid in catalog.ids)
    for number, component_id in catalog.menu_index().items():
        component = catalog.lookup(component_id)
        click.echo(f"  {number.rjust(2)}) {component.id.ljust(width)}  {component.description}")


# ── Register command modules ────────────────────────────────────

from myrpi.ui.cli.provision import install, uninstall  # noqa: E402

cli.add_command(install)
cli.add_command(uninstall)


if __name__ == "__main__":
    cli()
