"""
Receipt model — the result contract of a transition.

Executors return a Receipt for every component they touch.
They never raise; failures are captured here, tagged with the
error kind so the batch summary can tell them apart.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

Operation = Literal["install", "uninstall"]

ErrorKind = Literal[
    "verification_failed",
    "external_tool_failure",
    "invalid_selection",
    "unexpected",
]


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Outcome of one component transition."""

    component: str
    operation: Operation
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    error_kind: ErrorKind | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the transition reached the desired state."""
        return self.status != "failed"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def label(self) -> str:
        """Terminal status word: installed, removed, skipped or failed."""
        if self.status == "ok":
            return "installed" if self.operation == "install" else "removed"
        return self.status

    @classmethod
    def success(
        cls,
        component: str,
        operation: Operation,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            component=component,
            operation=operation,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        component: str,
        operation: Operation,
        error: str,
        error_kind: ErrorKind = "external_tool_failure",
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            component=component,
            operation=operation,
            status="failed",
            error=error,
            error_kind=error_kind,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        component: str,
        operation: Operation,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt (already in the desired state)."""
        return cls(
            component=component,
            operation=operation,
            status="skipped",
            output=reason,
            **kwargs,
        )
