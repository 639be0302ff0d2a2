"""
L4 Execution — apt adapter.

Wraps apt-get / dpkg for the package transitions.  Batch-level
state lives here: the package index is refreshed at most once per
batch (again only after a repository change), and ``removed_any``
tells the orchestrator whether an autoremove sweep is needed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from myrpi.core.errors import ExternalToolFailure
from myrpi.core.models.component import RepositorySpec
from myrpi.core.services.provision.detection.system_deps import is_pkg_installed
from myrpi.core.services.provision.execution.subprocess_runner import Runner

logger = logging.getLogger(__name__)

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class AptPackageManager:
    """Thin, stateful wrapper over apt-get for one batch."""

    def __init__(self, run: Runner, fetch: Callable[[str, Path], None]):
        self._run = run
        self._fetch = fetch
        self._index_fresh = False
        self.removed_any = False

    # ── Queries ─────────────────────────────────────────────────

    def is_installed(self, pkg: str) -> bool:
        return is_pkg_installed(pkg, "apt")

    def missing(self, packages: list[str]) -> list[str]:
        return [p for p in packages if not self.is_installed(p)]

    def dpkg_arch(self) -> str:
        result = self._run(["dpkg", "--print-architecture"])
        if not result["ok"]:
            raise ExternalToolFailure("Cannot determine dpkg architecture", result.get("stderr", ""))
        return result["stdout"].strip()

    # ── Mutations ───────────────────────────────────────────────

    def _apt(self, args: list[str], what: str) -> None:
        result = self._run(["apt-get", *args], env_overrides=_APT_ENV)
        if not result["ok"]:
            raise ExternalToolFailure(
                f"{what} failed: {result.get('error', 'unknown error')}",
                result.get("stderr", ""),
            )

    def refresh_index(self, force: bool = False) -> None:
        """``apt-get update`` unless already done in this batch."""
        if self._index_fresh and not force:
            return
        self._apt(["update"], "apt-get update")
        self._index_fresh = True

    def install(self, packages: list[str]) -> None:
        if not packages:
            return
        self.refresh_index()
        logger.info("Installing packages: %s", " ".join(packages))
        self._apt(["install", "-y", *packages], f"Install of {', '.join(packages)}")

    def remove(self, packages: list[str]) -> None:
        if not packages:
            return
        logger.info("Removing packages: %s", " ".join(packages))
        self._apt(["remove", "-y", *packages], f"Removal of {', '.join(packages)}")
        self.removed_any = True

    def autoremove(self) -> None:
        logger.info("Removing unused dependencies")
        self._apt(["autoremove", "-y"], "apt-get autoremove")

    # ── Third-party repositories ────────────────────────────────

    def repository_configured(self, repo: RepositorySpec) -> bool:
        return Path(repo.keyring_path).is_file() and Path(repo.sources_path).is_file()

    def add_repository(self, repo: RepositorySpec) -> bool:
        """Install the keyring and sources list.  Returns True if anything changed."""
        keyring = Path(repo.keyring_path)
        sources = Path(repo.sources_path)
        changed = False

        if not keyring.is_file():
            keyring.parent.mkdir(parents=True, exist_ok=True)
            self._fetch(repo.keyring_url, keyring)
            keyring.chmod(0o644)
            changed = True

        line = repo.sources_line.format(dpkg_arch=self.dpkg_arch()) + "\n"
        if not sources.is_file() or sources.read_text(encoding="utf-8") != line:
            sources.parent.mkdir(parents=True, exist_ok=True)
            sources.write_text(line, encoding="utf-8")
            changed = True

        if changed:
            logger.info("Configured apt repository %s", sources)
            self._index_fresh = False
        return changed

    def remove_repository(self, repo: RepositorySpec) -> bool:
        """Delete the sources list and keyring, then refresh the index."""
        removed = False
        for path in (Path(repo.sources_path), Path(repo.keyring_path)):
            if path.exists():
                path.unlink()
                logger.info("Removed %s", path)
                removed = True
            else:
                logger.info("%s already absent", path)
        if removed:
            self.refresh_index(force=True)
        return removed
