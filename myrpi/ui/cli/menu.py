"""
Terminal front end for the selection controller.

Thin: every decision is made by ``SelectionController``; this module
only renders and asks.
"""

from __future__ import annotations

import click

from myrpi.core.errors import InvalidSelection
from myrpi.core.models.action import Operation, Receipt
from myrpi.core.models.component import Component
from myrpi.core.services.provision.data.catalog import Catalog
from myrpi.core.services.provision.orchestration.orchestrator import BatchReport

_MARKERS = {
    "ok": ("✓", "green"),
    "skipped": ("⊘", "yellow"),
    "failed": ("✗", "red"),
}


def render_usage(operation: Operation, catalog: Catalog) -> str:
    """Usage text for ``myrpi install|uninstall``, listing every component id."""
    flags = "[--yes] [--force] [--step]" if operation == "install" else "[--yes] [--step]"
    verb = operation.capitalize()
    width = max(len(cid) for cid in catalog.ids) if len(catalog) else 8
    width = max(width, len("menu"))

    lines = [
        f"Usage: sudo myrpi {operation} [TARGET] {flags}",
        "",
        "Targets:",
        f"  {'menu'.ljust(width)}  Interactive menu to select components (default)",
        f"  {'all'.ljust(width)}  {verb} all components",
    ]
    for component in catalog.all_components():
        lines.append(f"  {component.id.ljust(width)}  {verb} {component.display_name}")
    lines.append(f"  {'help'.ljust(width)}  Show this message")
    lines.append("")
    lines.append("Several ids may be given comma-separated, e.g. neovim,lazyvim")
    return "\n".join(lines)


class ClickUI:
    """``SelectionUI`` implemented with click prompts and coloured output."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def show_menu(self, catalog: Catalog, operation: Operation) -> None:
        click.echo()
        click.secho(f"myrpi {operation}", fg="cyan", bold=True)
        numbers = catalog.menu_index()
        width = len(str(len(numbers)))
        for number, component_id in numbers.items():
            component = catalog.lookup(component_id)
            click.echo(f"  {number.rjust(width)}) {component.display_name}", nl=False)
            click.secho(f"  [{component.id}]", dim=True)
        click.echo()
        click.secho(f"  all) {operation.capitalize()} everything", fg="red" if operation == "uninstall" else None)
        click.echo("    q) Quit")
        click.echo()

    def show_help(self, catalog: Catalog, operation: Operation) -> None:
        click.echo(render_usage(operation, catalog))

    def prompt(self, text: str) -> str:
        return click.prompt(text, default="", show_default=False)

    def confirm(self, text: str) -> bool:
        return click.confirm(text, default=False)

    def invalid(self, tokens: list[str]) -> None:
        for token in tokens:
            click.secho(f"✗ {InvalidSelection(token)}", fg="red", err=True)

    def receipt(self, component: Component, receipt: Receipt) -> None:
        marker, color = _MARKERS[receipt.status]
        click.secho(f"  {marker} {component.display_name}: {receipt.label}", fg=color)
        if receipt.failed and receipt.error:
            click.secho(f"      {receipt.error}", fg="red", err=True)
        elif receipt.output and not self.quiet:
            click.secho(f"      {receipt.output}", dim=True)

    def summary(self, report: BatchReport) -> None:
        click.echo()
        color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(report.status, "white")
        click.secho(
            f"{report.operation.capitalize()}: {report.succeeded} done, "
            f"{report.skipped} skipped, {report.failed} failed",
            fg=color,
            bold=True,
        )
        for receipt in report.receipts:
            if receipt.component == "autoremove" and receipt.failed:
                click.secho(f"  ✗ autoremove: {receipt.error}", fg="red", err=True)
        if report.cancelled:
            click.secho("Stopped before the remaining components.", fg="yellow")
        if report.succeeded and not self.quiet:
            click.echo("Restart your shell to pick up the changes.")

    def cancelled(self) -> None:
        click.secho("Cancelled, nothing changed.", fg="yellow")
