"""
L4 Execution — Git alias management.

Reads and writes ``alias.*`` keys in the actual user's global git
config.  Every git call runs as that user so ``~/.gitconfig`` is
theirs, never root's.
"""

from __future__ import annotations

import logging

from myrpi.core.context import ActualUserContext
from myrpi.core.errors import ExternalToolFailure
from myrpi.core.services.provision.execution.subprocess_runner import Runner

logger = logging.getLogger(__name__)


class GitConfig:
    """``git config --global`` for one user."""

    def __init__(self, run: Runner, user: ActualUserContext):
        self._run = run
        self._user = user

    def _git(self, *args: str) -> dict:
        return self._run(["git", "config", "--global", *args], as_user=self._user)

    def get(self, key: str) -> str | None:
        """Current value, or None when unset (or git is unavailable)."""
        result = self._git("--get", key)
        if result["ok"]:
            return result["stdout"].rstrip("\n")
        # exit 1 = key not set; anything else is inconclusive
        if result.get("returncode") not in (None, 1):
            logger.warning("git config --get %s inconclusive: %s", key, result.get("error"))
        return None

    def get_alias(self, name: str) -> str | None:
        return self.get(alias_key(name))

    def set(self, key: str, value: str) -> None:
        result = self._git(key, value)
        if not result["ok"]:
            raise ExternalToolFailure(f"Cannot set {key}: {result.get('error')}", result.get("stderr", ""))

    def unset(self, key: str) -> None:
        result = self._git("--unset", key)
        # exit 5 = key was not set
        if not result["ok"] and result.get("returncode") != 5:
            raise ExternalToolFailure(f"Cannot unset {key}: {result.get('error')}", result.get("stderr", ""))


def alias_key(name: str) -> str:
    return f"alias.{name}"


def install_aliases(aliases: dict[str, str], git: GitConfig) -> list[str]:
    """Set each alias not already set to the same value.

    Returns:
        Names of aliases that were written.
    """
    written: list[str] = []
    for name, value in aliases.items():
        if git.get_alias(name) == value:
            logger.debug("Alias %s already set", name)
            continue
        git.set(alias_key(name), value)
        written.append(name)
    logger.info("Set %d git alias(es)", len(written))
    return written


def remove_aliases(aliases: dict[str, str], git: GitConfig) -> list[str]:
    """Unset only the aliases that are currently set.

    Returns:
        Names of aliases that were removed.
    """
    removed: list[str] = []
    for name in aliases:
        if git.get_alias(name) is None:
            logger.debug("Alias %s already absent", name)
            continue
        git.unset(alias_key(name))
        removed.append(name)
    logger.info("Removed %d git alias(es)", len(removed))
    return removed
