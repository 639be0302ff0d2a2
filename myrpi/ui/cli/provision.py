"""
CLI commands for install and uninstall.

Thin wrappers over ``myrpi.core.services.provision``: resolve the
target, check privilege, wire the execution context, and hand the
rest to the selection controller.
"""

from __future__ import annotations

import sys

import click

from myrpi.core.config.loader import ConfigError, load_settings
from myrpi.core.context import resolve_actual_user
from myrpi.core.errors import NotPrivileged
from myrpi.core.models.action import Operation
from myrpi.core.services.provision.context import create_context
from myrpi.core.services.provision.data.catalog import build_catalog, validate_catalog
from myrpi.core.services.provision.orchestration.orchestrator import ensure_privileged
from myrpi.core.services.provision.orchestration.selection import (
    HELP_TOKENS,
    SelectionController,
)
from myrpi.ui.cli.menu import ClickUI, render_usage


def _run_operation(
    ctx: click.Context,
    operation: Operation,
    target: str | None,
    *,
    assume_yes: bool,
    force: bool = False,
    step: bool = False,
) -> None:
    token = (target or "menu").strip()

    if token.lower() in HELP_TOKENS:
        click.echo(render_usage(operation, build_catalog()))
        return

    try:
        ensure_privileged()
    except NotPrivileged as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)

    catalog = build_catalog(settings)
    errors = validate_catalog(catalog.all_components())
    if errors:
        for err in errors:
            click.secho(f"✗ {err}", fg="red", err=True)
        sys.exit(1)

    ui = ClickUI(quiet=ctx.obj.get("quiet", False))
    exec_ctx = create_context(
        settings,
        resolve_actual_user(),
        confirm=(lambda _prompt: True) if assume_yes else ui.confirm,
        force=force,
    )
    controller = SelectionController(
        catalog, operation, exec_ctx, ui,
        assume_yes=assume_yes,
        step=step,
    )

    if token.lower() == "menu":
        result = controller.run_menu()
    else:
        result = controller.run_target(token)

    if result.usage_error:
        click.echo(render_usage(operation, catalog), err=True)
    sys.exit(result.exit_code)


@click.command()
@click.argument("target", required=False)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Answer yes to confirmation prompts.")
@click.option("--force", is_flag=True, help="Reinstall components that are already present.")
@click.option("--step", is_flag=True, help="Ask before each component in a batch.")
@click.pass_context
def install(ctx: click.Context, target: str | None, assume_yes: bool, force: bool, step: bool) -> None:
    """Install components.

    TARGET is a component id, several ids comma-separated, ``all``,
    or ``menu`` (the default) for the interactive menu.

    Examples:

        sudo myrpi install neovim

        sudo myrpi install fzf,bat,eza

        sudo myrpi install all --yes
    """
    _run_operation(ctx, "install", target, assume_yes=assume_yes, force=force, step=step)


@click.command()
@click.argument("target", required=False)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Answer yes to confirmation prompts.")
@click.option("--step", is_flag=True, help="Ask before each component in a batch.")
@click.pass_context
def uninstall(ctx: click.Context, target: str | None, assume_yes: bool, step: bool) -> None:
    """Uninstall components.

    TARGET is a component id, several ids comma-separated, ``all``,
    or ``menu`` (the default) for the interactive menu.  Removing a
    version manager's data directory asks separately unless --yes.
    """
    _run_operation(ctx, "uninstall", target, assume_yes=assume_yes, step=step)
