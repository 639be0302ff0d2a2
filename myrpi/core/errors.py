"""
Error taxonomy for provisioning.

Only ``NotPrivileged`` ever escapes to the CLI as a fatal error.
The others are raised inside a single component's transition and
converted into a failed Receipt by the executor, so one bad
component never stops the rest of the batch.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for provisioning errors."""

    kind = "unexpected"


class NotPrivileged(ProvisionError):
    """The process is not running as root. Checked before any side effect."""

    kind = "not_privileged"


class VerificationFailed(ProvisionError):
    """A downloaded artifact's digest did not match the expected value."""

    kind = "verification_failed"

    def __init__(self, source: str, expected: str, actual: str = "", message: str = ""):
        self.source = source
        self.expected = expected
        self.actual = actual
        if not message:
            message = f"Checksum mismatch for {source} (expected {expected}"
            message += f", got {actual})" if actual else ")"
        super().__init__(message)


class ExternalToolFailure(ProvisionError):
    """The package manager, downloader or an installer exited non-zero."""

    kind = "external_tool_failure"

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message)


class InvalidSelection(ProvisionError):
    """A selection token does not name any catalog component."""

    kind = "invalid_selection"

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown component: {token}")
