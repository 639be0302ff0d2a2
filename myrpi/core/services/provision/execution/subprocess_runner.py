"""
L4 Execution — Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called for
provisioning.  Logging, user switching and error capture are
centralised here.  The process is already root; commands that
must act as the invoking user are wrapped in ``sudo -u USER -H``.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Any, Protocol

from myrpi.core.context import ActualUserContext

logger = logging.getLogger(__name__)


class Runner(Protocol):
    """Callable signature shared by the real runner and test doubles."""

    def __call__(
        self,
        cmd: list[str],
        *,
        as_user: ActualUserContext | None = None,
        env_overrides: dict[str, str] | None = None,
        input_text: str | None = None,
        cwd: str | None = None,
        timeout: int | None = None,
    ) -> dict[str, Any]: ...


def _wrap_for_user(
    cmd: list[str],
    user: ActualUserContext,
    env_overrides: dict[str, str],
) -> list[str]:
    """Prefix ``cmd`` so it runs as ``user`` with its own HOME.

    sudo resets the environment, so overrides are passed through
    ``env`` on the far side of the switch.
    """
    wrapped = ["sudo", "-u", user.name, "-H", "--"]
    if env_overrides:
        wrapped += ["env"] + [f"{k}={v}" for k, v in env_overrides.items()]
    return wrapped + cmd


def run_subprocess(
    cmd: list[str],
    *,
    as_user: ActualUserContext | None = None,
    env_overrides: dict[str, str] | None = None,
    input_text: str | None = None,
    cwd: str | None = None,
    timeout: int | None = None,
) -> dict[str, Any]:
    """Run a command and capture its outcome.

    No timeout is imposed by default: a hung package manager hangs
    the batch, and callers that need a deadline pass ``timeout``.

    Args:
        cmd: Command list for ``subprocess.run()``.
        as_user: Run as this user (HOME set to their home) instead of root.
        env_overrides: Extra env vars for the child.
        input_text: Text piped to stdin (installer scripts).
        cwd: Working directory for the command.
        timeout: Seconds before ``TimeoutExpired``, or None.

    Returns:
        ``{"ok": True, "stdout": "...", "elapsed_ms": N}`` on success,
        ``{"ok": False, "error": "...", "stderr": "...", ...}`` on failure.
    """
    overrides = dict(env_overrides or {})
    env = os.environ.copy()

    if as_user is not None:
        overrides.setdefault("HOME", str(as_user.home))
        if as_user.needs_switch:
            cmd = _wrap_for_user(cmd, as_user, overrides)
            overrides = {}
        overrides.setdefault("USER", as_user.name)

    for key, value in overrides.items():
        env[key] = os.path.expandvars(value)

    logger.debug("Running: %s", " ".join(cmd))
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            input=input_text,
            env=env,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        return {"ok": False, "error": f"Command timed out ({timeout}s): {cmd[0]}"}
    except FileNotFoundError:
        return {"ok": False, "error": f"Command not found: {cmd[0]}"}
    except OSError as e:
        logger.exception("Subprocess error: %s", cmd)
        return {"ok": False, "error": str(e)}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout[-2000:] if result.stdout else ""
    stderr = result.stderr[-2000:] if result.stderr else ""

    if result.returncode == 0:
        return {"ok": True, "stdout": stdout, "elapsed_ms": elapsed_ms}

    return {
        "ok": False,
        "error": f"Command failed (exit {result.returncode}): {' '.join(cmd[:4])}",
        "returncode": result.returncode,
        "stderr": stderr,
        "stdout": stdout,
        "elapsed_ms": elapsed_ms,
    }
