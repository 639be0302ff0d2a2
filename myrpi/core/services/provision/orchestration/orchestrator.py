"""
L5 Orchestration — Batch runner.

Takes an ordered list of components, runs the matching transition
for each, strictly one after another, and collects receipts.

Flow:
    privilege check → for each component: transition → receipt → report
    → (uninstall only) one autoremove sweep
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from myrpi.core.context import is_elevated
from myrpi.core.errors import NotPrivileged, ProvisionError
from myrpi.core.models.action import Operation, Receipt
from myrpi.core.models.component import Component
from myrpi.core.services.provision.context import ExecutionContext
from myrpi.core.services.provision.execution.install import install_component
from myrpi.core.services.provision.execution.uninstall import uninstall_component

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[str, Callable[[Component, ExecutionContext], Receipt]] = {
    "install": install_component,
    "uninstall": uninstall_component,
}


@dataclass
class BatchReport:
    """Result of running one batch."""

    operation: Operation
    receipts: list[Receipt] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.status == "ok")

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.status == "skipped")

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0 or self.skipped > 0:
            return "partial"
        return "failed"

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "status": self.status,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "invalid": list(self.invalid),
            "cancelled": self.cancelled,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


def ensure_privileged() -> None:
    """Raise NotPrivileged unless running as root.  Call before any side effect."""
    if not is_elevated():
        raise NotPrivileged("This command must be run with sudo (as root)")


def run_component(component: Component, operation: Operation, ctx: ExecutionContext) -> Receipt:
    """Run one transition and stamp timing on its receipt.  Never raises."""
    started_at = datetime.now(UTC).isoformat()
    start = time.monotonic()
    try:
        receipt = _TRANSITIONS[operation](component, ctx)
    except Exception as e:
        # Executors should never raise, but one component must not sink the batch
        logger.exception("%s %s raised", operation, component.id)
        receipt = Receipt.failure(
            component.id, operation,
            error=f"Unexpected error: {e}",
            error_kind="unexpected",
        )

    return receipt.model_copy(update={
        "started_at": started_at,
        "ended_at": datetime.now(UTC).isoformat(),
        "duration_ms": int((time.monotonic() - start) * 1000),
    })


def run_batch(
    components: list[Component],
    operation: Operation,
    ctx: ExecutionContext,
    *,
    on_receipt: Callable[[Component, Receipt], None] | None = None,
    should_continue: Callable[[Component], bool] | None = None,
) -> BatchReport:
    """Run ``operation`` over ``components`` in the given order.

    Args:
        components: Already ordered for ``operation``.
        operation: ``install`` or ``uninstall``.
        ctx: Shared execution context.
        on_receipt: Called after each component (progress output).
        should_continue: Asked before every component after the first;
            returning False stops the batch.  Completed work is kept.

    Returns:
        BatchReport with one receipt per processed component.
    """
    report = BatchReport(operation=operation)

    for index, component in enumerate(components):
        if index > 0 and should_continue is not None and not should_continue(component):
            logger.info("Batch stopped before %s", component.id)
            report.cancelled = True
            break

        receipt = run_component(component, operation, ctx)
        report.receipts.append(receipt)
        if on_receipt is not None:
            on_receipt(component, receipt)

    if operation == "uninstall" and ctx.packages.removed_any:
        try:
            ctx.packages.autoremove()
        except ProvisionError as e:
            logger.error("autoremove failed: %s", e)
            report.receipts.append(Receipt.failure("autoremove", operation, str(e)))

    logger.info(
        "%s batch: %d ok, %d skipped, %d failed",
        operation, report.succeeded, report.skipped, report.failed,
    )
    return report
