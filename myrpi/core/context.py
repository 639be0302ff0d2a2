"""
Actual user context — who we are provisioning for.

The provisioner runs under sudo, but almost everything it writes
belongs to the person who invoked sudo: dotfiles, git config,
per-user tool directories.  ``resolve_actual_user`` is called once
at startup and the resulting value is threaded into every operation
that touches ``~``.  Nothing else reads ``SUDO_USER`` or ``Path.home()``.
"""

from __future__ import annotations

import logging
import os
import pwd
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActualUserContext:
    """The real, non-elevated invoking user."""

    name: str
    home: Path
    uid: int
    gid: int
    elevated: bool = False

    def path(self, relative: str) -> Path:
        """Resolve a home-relative path (``~/`` prefix optional)."""
        rel = relative[2:] if relative.startswith("~/") else relative
        return self.home / rel

    @property
    def needs_switch(self) -> bool:
        """Whether user-scoped commands must drop privileges to run."""
        return self.elevated and self.uid != os.geteuid()


def is_elevated() -> bool:
    """True when the effective uid is root."""
    return os.geteuid() == 0


def resolve_actual_user(environ: dict[str, str] | None = None) -> ActualUserContext:
    """Resolve the invoking user even when running under sudo.

    ``SUDO_USER`` wins when set to a non-root account; otherwise the
    effective user is used.
    """
    env = os.environ if environ is None else environ
    elevated = is_elevated()

    sudo_user = env.get("SUDO_USER", "")
    if sudo_user and sudo_user != "root":
        try:
            entry = pwd.getpwnam(sudo_user)
        except KeyError:
            logger.warning("SUDO_USER=%s has no passwd entry, using effective user", sudo_user)
        else:
            return ActualUserContext(
                name=entry.pw_name,
                home=Path(entry.pw_dir),
                uid=entry.pw_uid,
                gid=entry.pw_gid,
                elevated=elevated,
            )

    entry = pwd.getpwuid(os.geteuid())
    return ActualUserContext(
        name=entry.pw_name,
        home=Path(entry.pw_dir),
        uid=entry.pw_uid,
        gid=entry.pw_gid,
        elevated=elevated,
    )
