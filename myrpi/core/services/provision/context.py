"""
Execution context — the shared resources one batch runs against.

Everything an executor touches outside its own component comes
through here: the actual user, the install prefix, the subprocess
runner, the downloader, the package manager, the git config and
the data-directory confirmation gate.  Tests swap in fakes by
constructing an ExecutionContext directly.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from myrpi.core.config.loader import Settings
from myrpi.core.context import ActualUserContext
from myrpi.core.services.provision.execution.download import download_file
from myrpi.core.services.provision.execution.git_config import GitConfig
from myrpi.core.services.provision.execution.package_manager import AptPackageManager
from myrpi.core.services.provision.execution.subprocess_runner import Runner, run_subprocess

Fetcher = Callable[[str, Path], None]
ConfirmGate = Callable[[str], bool]


def _always_yes(prompt: str) -> bool:
    return True


@dataclass
class ExecutionContext:
    user: ActualUserContext
    prefix: Path
    run: Runner
    fetch: Fetcher
    packages: AptPackageManager
    git: GitConfig
    confirm: ConfirmGate = _always_yes
    force: bool = False
    tmp_root: Path | None = None


def create_context(
    settings: Settings,
    user: ActualUserContext,
    *,
    confirm: ConfirmGate = _always_yes,
    force: bool = False,
) -> ExecutionContext:
    """Wire the real adapters for a batch on this host."""
    return ExecutionContext(
        user=user,
        prefix=settings.prefix,
        run=run_subprocess,
        fetch=download_file,
        packages=AptPackageManager(run_subprocess, download_file),
        git=GitConfig(run_subprocess, user),
        confirm=confirm,
        force=force,
    )
