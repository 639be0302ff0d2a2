"""
L5 Orchestration — Selection controller.

Drives one ``install`` / ``uninstall`` invocation from the user's
choice to the summary:

    IDLE → AWAITING_SELECTION → CONFIRMING → EXECUTING → REPORTING
         → IDLE (menu loops) | TERMINATED

A single component named on the command line runs without a prompt.
``all`` and any multi-component batch need confirmation first
(``--yes`` answers it).  Tokens that match nothing are reported one
by one and the valid rest of the selection still runs.

The controller never prints; everything user-facing goes through
the ``SelectionUI`` it is given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from myrpi.core.models.action import Operation, Receipt
from myrpi.core.models.component import Component
from myrpi.core.services.provision.context import ExecutionContext
from myrpi.core.services.provision.data.catalog import Catalog
from myrpi.core.services.provision.domain.selection import Selection, parse_selection
from myrpi.core.services.provision.orchestration.orchestrator import BatchReport, run_batch

logger = logging.getLogger(__name__)

QUIT_TOKENS = frozenset({"q", "quit", "exit"})
HELP_TOKENS = frozenset({"help", "-h", "--help", "?"})


class State(Enum):
    IDLE = "idle"
    AWAITING_SELECTION = "awaiting_selection"
    CONFIRMING = "confirming"
    EXECUTING = "executing"
    REPORTING = "reporting"
    TERMINATED = "terminated"


class SelectionUI(Protocol):
    """What the controller needs from a front end."""

    def show_menu(self, catalog: Catalog, operation: Operation) -> None: ...

    def show_help(self, catalog: Catalog, operation: Operation) -> None: ...

    def prompt(self, text: str) -> str: ...

    def confirm(self, text: str) -> bool: ...

    def invalid(self, tokens: list[str]) -> None: ...

    def receipt(self, component: Component, receipt: Receipt) -> None: ...

    def summary(self, report: BatchReport) -> None: ...

    def cancelled(self) -> None: ...


@dataclass
class ControllerResult:
    """Everything that happened during one invocation."""

    reports: list[BatchReport] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)
    usage_error: bool = False

    @property
    def failed(self) -> int:
        return sum(r.failed for r in self.reports)

    @property
    def exit_code(self) -> int:
        if self.usage_error or self.failed:
            return 1
        return 0


class SelectionController:
    """State machine for one install / uninstall invocation."""

    def __init__(
        self,
        catalog: Catalog,
        operation: Operation,
        ctx: ExecutionContext,
        ui: SelectionUI,
        *,
        assume_yes: bool = False,
        step: bool = False,
    ):
        self.catalog = catalog
        self.operation = operation
        self.ctx = ctx
        self.ui = ui
        self.assume_yes = assume_yes
        self.step = step
        self.state = State.IDLE

    def _enter(self, state: State) -> None:
        logger.debug("selection: %s → %s", self.state.value, state.value)
        self.state = state

    @property
    def _verb(self) -> str:
        return self.operation.capitalize()

    # ── Entry points ────────────────────────────────────────────

    def run_target(self, target: str) -> ControllerResult:
        """Run a selection given on the command line (ids or ``all``)."""
        result = ControllerResult()
        self._enter(State.AWAITING_SELECTION)

        selection = parse_selection(target, self.catalog, self.operation)
        if selection.invalid:
            result.invalid.extend(selection.invalid)
            self.ui.invalid(selection.invalid)
        if selection.empty:
            result.usage_error = True
            self._enter(State.TERMINATED)
            return result

        self._execute(selection, result)
        self._enter(State.TERMINATED)
        return result

    def run_menu(self) -> ControllerResult:
        """Interactive loop: pick, confirm, run, repeat until quit."""
        result = ControllerResult()

        while self.state is not State.TERMINATED:
            self._enter(State.AWAITING_SELECTION)
            self.ui.show_menu(self.catalog, self.operation)
            raw = self.ui.prompt("Select components (numbers or ids, comma-separated; 'all'; q to quit)")
            token = raw.strip().lower()

            if not token:
                continue
            if token in QUIT_TOKENS:
                break
            if token in HELP_TOKENS:
                self.ui.show_help(self.catalog, self.operation)
                break

            selection = parse_selection(raw, self.catalog, self.operation, allow_numbers=True)
            if selection.invalid:
                result.invalid.extend(selection.invalid)
                self.ui.invalid(selection.invalid)
            if selection.empty:
                continue

            if self._execute(selection, result) is None:
                continue
            if selection.is_all:
                break
            if not self.ui.confirm(f"Continue {self.operation}ing?"):
                break

        self._enter(State.TERMINATED)
        return result

    # ── Internals ───────────────────────────────────────────────

    def _confirm_batch(self, selection: Selection) -> bool:
        if not selection.bulk or self.assume_yes:
            return True
        self._enter(State.CONFIRMING)
        if selection.is_all:
            text = f"{self._verb} ALL {len(selection.components)} components?"
        else:
            ids = ", ".join(c.id for c in selection.components)
            text = f"{self._verb} {len(selection.components)} components ({ids})?"
        return self.ui.confirm(text)

    def _step_gate(self, component: Component) -> bool:
        return self.ui.confirm(f"Continue with {component.display_name}?")

    def _execute(self, selection: Selection, result: ControllerResult) -> BatchReport | None:
        if not self._confirm_batch(selection):
            logger.info("%s declined", self.operation)
            self.ui.cancelled()
            self._enter(State.IDLE)
            return None

        self._enter(State.EXECUTING)
        report = run_batch(
            selection.components,
            self.operation,
            self.ctx,
            on_receipt=self.ui.receipt,
            should_continue=self._step_gate if self.step else None,
        )
        report.invalid = list(selection.invalid)

        self._enter(State.REPORTING)
        self.ui.summary(report)
        result.reports.append(report)

        self._enter(State.IDLE)
        return report
