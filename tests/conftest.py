"""
Shared test fixtures and configuration.

In-memory stand-ins for everything an ExecutionContext reaches
outside the test's tmp_path: the subprocess runner, the downloader
and the apt adapter.  Git config goes through the real GitConfig
backed by the fake runner's key/value store.
"""

from __future__ import annotations

import io
import os
import tarfile
from collections.abc import Callable
from pathlib import Path

import pytest

from myrpi.core.context import ActualUserContext
from myrpi.core.errors import ExternalToolFailure
from myrpi.core.models.component import RepositorySpec
from myrpi.core.services.provision.context import ExecutionContext
from myrpi.core.services.provision.execution.git_config import GitConfig


def _ok(stdout: str = "") -> dict:
    return {"ok": True, "stdout": stdout, "elapsed_ms": 0}


def _fail(returncode: int = 1, error: str = "failed", stderr: str = "") -> dict:
    return {"ok": False, "error": error, "returncode": returncode, "stderr": stderr, "stdout": ""}


class FakeRunner:
    """Records commands; emulates git config, git clone and installer scripts."""

    def __init__(self):
        self.calls: list[tuple[list[str], dict]] = []
        self.git_store: dict[str, str] = {}
        self.script_hook: Callable[[ActualUserContext | None], None] | None = None
        self.fail_prefixes: list[list[str]] = []

    def commands(self) -> list[list[str]]:
        return [cmd for cmd, _ in self.calls]

    def __call__(self, cmd, *, as_user=None, env_overrides=None, input_text=None, cwd=None, timeout=None):
        self.calls.append((list(cmd), {"as_user": as_user, "env_overrides": env_overrides, "input_text": input_text}))

        for prefix in self.fail_prefixes:
            if cmd[: len(prefix)] == prefix:
                return _fail(error=f"Command failed (exit 1): {' '.join(cmd[:4])}", stderr="boom")

        if cmd[:3] == ["git", "config", "--global"]:
            return self._git_config(cmd[3:])
        if cmd[:2] == ["git", "clone"]:
            dest = Path(cmd[-1])
            (dest / ".git").mkdir(parents=True)
            (dest / "init.lua").write_text("-- starter\n")
            return _ok()
        if cmd[:2] == ["sh", "-s"]:
            if self.script_hook is not None:
                self.script_hook(as_user)
            return _ok()
        if cmd == ["dpkg", "--print-architecture"]:
            return _ok("arm64\n")
        return _ok()

    def _git_config(self, args: list[str]) -> dict:
        if args[0] == "--get":
            if args[1] in self.git_store:
                return _ok(self.git_store[args[1]] + "\n")
            return _fail(returncode=1)
        if args[0] == "--unset":
            if self.git_store.pop(args[1], None) is None:
                return _fail(returncode=5)
            return _ok()
        self.git_store[args[0]] = args[1]
        return _ok()


class FakePackageManager:
    """Duck-typed AptPackageManager over an in-memory package set."""

    def __init__(self, installed: set[str] | None = None):
        self.installed: set[str] = set(installed or ())
        self.repositories: set[str] = set()
        self.install_calls: list[list[str]] = []
        self.remove_calls: list[list[str]] = []
        self.autoremove_calls = 0
        self.refresh_calls = 0
        self.broken: set[str] = set()
        self.removed_any = False

    def is_installed(self, pkg: str) -> bool:
        return pkg in self.installed

    def missing(self, packages: list[str]) -> list[str]:
        return [p for p in packages if p not in self.installed]

    def refresh_index(self, force: bool = False) -> None:
        self.refresh_calls += 1

    def install(self, packages: list[str]) -> None:
        if not packages:
            return
        self.install_calls.append(list(packages))
        bad = [p for p in packages if p in self.broken]
        if bad:
            raise ExternalToolFailure(f"Install of {', '.join(bad)} failed")
        self.installed.update(packages)

    def remove(self, packages: list[str]) -> None:
        self.remove_calls.append(list(packages))
        self.installed.difference_update(packages)
        self.removed_any = True

    def autoremove(self) -> None:
        self.autoremove_calls += 1

    def repository_configured(self, repo: RepositorySpec) -> bool:
        return repo.sources_path in self.repositories

    def add_repository(self, repo: RepositorySpec) -> bool:
        if repo.sources_path in self.repositories:
            return False
        self.repositories.add(repo.sources_path)
        return True

    def remove_repository(self, repo: RepositorySpec) -> bool:
        if repo.sources_path not in self.repositories:
            return False
        self.repositories.discard(repo.sources_path)
        return True


class FakeFetcher:
    """Serves registered URLs from memory; anything else is a download error."""

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.fetched: list[str] = []

    def add(self, url: str, data: bytes) -> None:
        self.files[url] = data

    def __call__(self, url: str, dest: Path) -> None:
        self.fetched.append(url)
        if url not in self.files:
            raise ExternalToolFailure(f"Download failed: {url}: 404")
        Path(dest).write_bytes(self.files[url])


def make_tarball(files: dict[str, bytes], top: str = "tool-1.0") -> bytes:
    """Build a .tar.gz in memory with every file under a single top-level dir."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, data in files.items():
            info = tarfile.TarInfo(f"{top}/{name}")
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def user(tmp_path: Path) -> ActualUserContext:
    home = tmp_path / "home"
    home.mkdir()
    return ActualUserContext(name="pi", home=home, uid=os.getuid(), gid=os.getgid(), elevated=False)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def packages() -> FakePackageManager:
    return FakePackageManager()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def exec_ctx(tmp_path: Path, user, runner, packages, fetcher) -> ExecutionContext:
    prefix = tmp_path / "prefix"
    prefix.mkdir()
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    return ExecutionContext(
        user=user,
        prefix=prefix,
        run=runner,
        fetch=fetcher,
        packages=packages,
        git=GitConfig(runner, user),
        tmp_root=scratch,
    )


@pytest.fixture
def tarball() -> Callable[..., bytes]:
    """``tarball({"bin/tool": b"..."})`` → .tar.gz bytes."""
    return make_tarball
