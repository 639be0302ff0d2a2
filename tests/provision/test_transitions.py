"""
Tests for install / uninstall transitions per component kind.

Covers idempotence (second run is a skip), install→uninstall round
trips, the checksum gate in front of the install prefix, and the
confirmation gate on manager data directories.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from myrpi.core.models.component import (
    ArchiveSpec,
    CloneSpec,
    Component,
    GitAliasSpec,
    PackageSpec,
    RepositorySpec,
    ScriptSpec,
    ShellConfigSpec,
)
from myrpi.core.services.provision.detection.presence import is_absent, is_present, presence_state
from myrpi.core.services.provision.execution.install import install_component
from myrpi.core.services.provision.execution.uninstall import uninstall_component

TOOL_URL = "https://example.org/releases/tool-1.0.tar.gz"
SCRIPT_URL = "https://example.org/install.sh"
SCRIPT_BODY = b"#!/bin/sh\necho installing\n"


def _digest(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


def archive_component(checksum: str, **overrides) -> Component:
    spec = {
        "url": TOOL_URL,
        "version": "1.0",
        "checksum": checksum,
        "members": {"tool": "bin/tool", "share/tool": "share/tool"},
        "user_paths": [".config/tool"],
        "data_dirs": [".tool-data"],
    }
    spec.update(overrides)
    return Component(id="tool", label="tool", order=10, spec=ArchiveSpec(**spec))


@pytest.fixture
def tool_archive(fetcher, tarball) -> bytes:
    data = tarball({"tool": b"#!/bin/sh\n", "share/tool/runtime.txt": b"rt"})
    fetcher.add(TOOL_URL, data)
    return data


# ── Package ─────────────────────────────────────────────────────


class TestPackage:
    def _component(self, **kw) -> Component:
        return Component(id="apt", order=10, spec=PackageSpec(packages=["jq", "htop"], **kw))

    def test_installs_only_missing(self, exec_ctx, packages):
        packages.installed.add("jq")
        receipt = install_component(self._component(), exec_ctx)
        assert receipt.status == "ok"
        assert packages.install_calls == [["htop"]]

    def test_second_install_skips(self, exec_ctx, packages):
        install_component(self._component(), exec_ctx)
        receipt = install_component(self._component(), exec_ctx)
        assert receipt.status == "skipped"
        assert receipt.label == "skipped"
        assert len(packages.install_calls) == 1

    def test_install_failure_is_receipt(self, exec_ctx, packages):
        packages.broken.add("htop")
        receipt = install_component(self._component(), exec_ctx)
        assert receipt.failed
        assert receipt.error_kind == "external_tool_failure"

    def test_repository_round_trip(self, exec_ctx, packages):
        repo = RepositorySpec(
            keyring_url="https://example.org/key.gpg",
            keyring_path="/usr/share/keyrings/x.gpg",
            sources_path="/etc/apt/sources.list.d/x.list",
            sources_line="deb [arch={dpkg_arch}] https://example.org stable main",
        )
        component = Component(id="gh", order=20, spec=PackageSpec(packages=["gh"], repository=repo))

        assert install_component(component, exec_ctx).status == "ok"
        assert packages.repositories == {repo.sources_path}
        assert is_present(component, exec_ctx)

        assert uninstall_component(component, exec_ctx).status == "ok"
        assert packages.repositories == set()
        assert "gh" not in packages.installed
        assert uninstall_component(component, exec_ctx).status == "skipped"


# ── Release archive ─────────────────────────────────────────────


class TestArchive:
    def test_install_then_skip(self, exec_ctx, tool_archive):
        component = archive_component(_digest(tool_archive))

        receipt = install_component(component, exec_ctx)
        assert receipt.status == "ok", receipt.error
        assert (exec_ctx.prefix / "bin" / "tool").exists()
        assert (exec_ctx.prefix / "share" / "tool" / "runtime.txt").read_text() == "rt"

        again = install_component(component, exec_ctx)
        assert again.status == "skipped"

    def test_checksum_case_insensitive(self, exec_ctx, tool_archive):
        component = archive_component(_digest(tool_archive).upper())
        assert install_component(component, exec_ctx).status == "ok"

    def test_mismatch_leaves_prefix_untouched(self, exec_ctx, tool_archive):
        (exec_ctx.prefix / "bin").mkdir()
        (exec_ctx.prefix / "bin" / "tool").write_text("previous")
        component = archive_component("sha256:" + "0" * 64)

        receipt = install_component(component, exec_ctx)

        assert receipt.failed
        assert receipt.error_kind == "verification_failed"
        assert (exec_ctx.prefix / "bin" / "tool").read_text() == "previous"
        assert not (exec_ctx.prefix / "share").exists()
        assert list(exec_ctx.tmp_root.iterdir()) == []

    def test_no_digest_fails_closed(self, exec_ctx, tool_archive):
        receipt = install_component(archive_component(""), exec_ctx)
        assert receipt.error_kind == "verification_failed"
        assert not (exec_ctx.prefix / "bin").exists()

    def test_manifest_digest(self, exec_ctx, fetcher, tool_archive):
        sums = "https://example.org/releases/sums.txt"
        fetcher.add(sums, f"{hashlib.sha256(tool_archive).hexdigest()}  tool-1.0.tar.gz\n".encode())
        component = archive_component("", checksum_url=sums)
        assert install_component(component, exec_ctx).status == "ok"

    def test_post_install_runs_as_user(self, exec_ctx, runner, tool_archive):
        component = archive_component(
            _digest(tool_archive), post_install=[["tool", "plugin", "add", "nodejs"]]
        )
        install_component(component, exec_ctx)
        cmd, kwargs = runner.calls[-1]
        assert cmd == ["tool", "plugin", "add", "nodejs"]
        assert kwargs["as_user"] == exec_ctx.user
        assert kwargs["env_overrides"]["PATH"].startswith(f"{exec_ctx.prefix}/bin:")

    def test_failed_post_install_is_retried(self, exec_ctx, runner, tool_archive):
        component = archive_component(
            _digest(tool_archive), post_install=[["tool", "plugin", "add", "nodejs"]]
        )
        runner.fail_prefixes.append(["tool", "plugin"])
        first = install_component(component, exec_ctx)
        assert first.failed
        assert not (exec_ctx.prefix / "bin" / "tool").exists()
        assert not is_present(component, exec_ctx)

        runner.fail_prefixes.clear()
        second = install_component(component, exec_ctx)
        assert second.status == "ok"
        assert (exec_ctx.prefix / "bin" / "tool").exists()
        post_calls = [c for c in runner.commands() if c[:2] == ["tool", "plugin"]]
        assert len(post_calls) == 2

    def test_round_trip(self, exec_ctx, tool_archive):
        component = archive_component(_digest(tool_archive))
        install_component(component, exec_ctx)
        exec_ctx.user.path(".config/tool").mkdir(parents=True)

        receipt = uninstall_component(component, exec_ctx)
        assert receipt.status == "ok"
        assert receipt.label == "removed"
        assert not (exec_ctx.prefix / "bin" / "tool").exists()
        assert not exec_ctx.user.path(".config/tool").exists()
        assert (exec_ctx.prefix / "bin").is_dir()
        assert is_absent(component, exec_ctx)

        assert uninstall_component(component, exec_ctx).status == "skipped"


class TestDataDirGate:
    def _installed(self, exec_ctx, tool_archive) -> Component:
        component = archive_component(_digest(tool_archive))
        install_component(component, exec_ctx)
        (exec_ctx.user.path(".tool-data") / "installs" / "nodejs").mkdir(parents=True)
        return component

    def test_declined_keeps_data(self, exec_ctx, tool_archive):
        component = self._installed(exec_ctx, tool_archive)
        prompts: list[str] = []
        exec_ctx.confirm = lambda text: prompts.append(text) or False

        receipt = uninstall_component(component, exec_ctx)

        assert receipt.status == "ok"
        assert "kept data" in receipt.output
        assert len(prompts) == 1
        assert exec_ctx.user.path(".tool-data").is_dir()
        assert not (exec_ctx.prefix / "bin" / "tool").exists()
        assert presence_state(component, exec_ctx) == "partial"

    def test_confirmed_removes_data(self, exec_ctx, tool_archive):
        component = self._installed(exec_ctx, tool_archive)
        exec_ctx.confirm = lambda text: True

        receipt = uninstall_component(component, exec_ctx)

        assert "removed data" in receipt.output
        assert not exec_ctx.user.path(".tool-data").exists()
        assert is_absent(component, exec_ctx)


# ── Installer script ────────────────────────────────────────────


class TestScript:
    def _component(self, sha256: str = "") -> Component:
        return Component(
            id="uv",
            order=100,
            spec=ScriptSpec(
                url=SCRIPT_URL,
                sha256=sha256,
                binaries=[".local/bin/uv"],
                user_paths=[".cache/uv"],
                data_dirs=[".local/share/uv"],
            ),
        )

    def _hook(self, exec_ctx):
        def create(as_user):
            bin_dir = as_user.path(".local/bin")
            bin_dir.mkdir(parents=True, exist_ok=True)
            (bin_dir / "uv").write_text("uv")
        return create

    def test_runs_as_user_with_body_on_stdin(self, exec_ctx, runner, fetcher):
        fetcher.add(SCRIPT_URL, SCRIPT_BODY)
        runner.script_hook = self._hook(exec_ctx)

        receipt = install_component(self._component(), exec_ctx)

        assert receipt.status == "ok", receipt.error
        cmd, kwargs = runner.calls[-1]
        assert cmd[:2] == ["sh", "-s"]
        assert kwargs["as_user"] == exec_ctx.user
        assert kwargs["input_text"] == SCRIPT_BODY.decode()
        assert install_component(self._component(), exec_ctx).status == "skipped"

    def test_bad_digest_never_runs(self, exec_ctx, runner, fetcher):
        fetcher.add(SCRIPT_URL, SCRIPT_BODY)
        receipt = install_component(self._component(sha256="0" * 64), exec_ctx)
        assert receipt.error_kind == "verification_failed"
        assert not any(cmd[:2] == ["sh", "-s"] for cmd in runner.commands())

    def test_installer_that_installs_nothing(self, exec_ctx, fetcher):
        fetcher.add(SCRIPT_URL, SCRIPT_BODY)
        receipt = install_component(self._component(), exec_ctx)
        assert receipt.failed
        assert "not found" in receipt.error

    def test_download_failure(self, exec_ctx):
        receipt = install_component(self._component(), exec_ctx)
        assert receipt.error_kind == "external_tool_failure"

    def test_uninstall_removes_owned_paths(self, exec_ctx, runner, fetcher):
        fetcher.add(SCRIPT_URL, SCRIPT_BODY)
        runner.script_hook = self._hook(exec_ctx)
        install_component(self._component(), exec_ctx)
        exec_ctx.user.path(".local/share/uv/python").mkdir(parents=True)
        (exec_ctx.user.path(".local/bin") / "other").write_text("keep me")

        receipt = uninstall_component(self._component(), exec_ctx)

        assert receipt.status == "ok"
        assert not exec_ctx.user.path(".local/bin/uv").exists()
        assert not exec_ctx.user.path(".local/share/uv").exists()
        assert exec_ctx.user.path(".local/bin/other").exists()


# ── Clone ───────────────────────────────────────────────────────


class TestClone:
    def _component(self) -> Component:
        return Component(
            id="lazyvim",
            order=40,
            spec=CloneSpec(
                repo="https://github.com/LazyVim/starter",
                dest=".config/nvim",
                user_paths=[".local/share/nvim"],
            ),
        )

    def test_clone_strips_git_dir(self, exec_ctx, runner):
        receipt = install_component(self._component(), exec_ctx)
        assert receipt.status == "ok"
        dest = exec_ctx.user.path(".config/nvim")
        assert (dest / "init.lua").exists()
        assert not (dest / ".git").exists()
        assert runner.calls[-1][1]["as_user"] == exec_ctx.user

    def test_round_trip(self, exec_ctx):
        install_component(self._component(), exec_ctx)
        exec_ctx.user.path(".local/share/nvim/lazy").mkdir(parents=True)
        assert uninstall_component(self._component(), exec_ctx).status == "ok"
        assert not exec_ctx.user.path(".config/nvim").exists()
        assert not exec_ctx.user.path(".local/share/nvim").exists()
        assert exec_ctx.user.path(".config").is_dir()

    def test_clone_failure(self, exec_ctx, runner):
        runner.fail_prefixes.append(["git", "clone"])
        receipt = install_component(self._component(), exec_ctx)
        assert receipt.error_kind == "external_tool_failure"


# ── Shell configuration ─────────────────────────────────────────


class TestShellConfig:
    def _component(self) -> Component:
        return Component(id="config", order=110, spec=ShellConfigSpec(env_content="export EDITOR=nvim\n"))

    def test_round_trip_restores_rc(self, exec_ctx):
        rc = exec_ctx.user.path(".bashrc")
        rc.write_text("export A=1\n")

        assert install_component(self._component(), exec_ctx).status == "ok"
        assert exec_ctx.user.path(".config/myrpi/env").read_text() == "export EDITOR=nvim\n"
        assert "source ~/.config/myrpi/env" in rc.read_text()
        assert install_component(self._component(), exec_ctx).status == "skipped"

        assert uninstall_component(self._component(), exec_ctx).status == "ok"
        assert rc.read_text() == "export A=1\n"
        assert not exec_ctx.user.path(".config/myrpi").exists()
        assert uninstall_component(self._component(), exec_ctx).status == "skipped"

    def test_orphan_marker_is_repaired(self, exec_ctx):
        rc = exec_ctx.user.path(".bashrc")
        rc.write_text("export A=1\n# Source myrpi environment\n")
        component = self._component()
        assert presence_state(component, exec_ctx) == "partial"

        assert install_component(component, exec_ctx).status == "ok"
        assert rc.read_text() == (
            "export A=1\n# Source myrpi environment\nsource ~/.config/myrpi/env\n"
        )
        assert is_present(component, exec_ctx)
        assert install_component(component, exec_ctx).status == "skipped"

    def test_non_utf8_rc_survives_round_trip(self, exec_ctx):
        rc = exec_ctx.user.path(".bashrc")
        rc.write_bytes(b"# caf\xe9\nexport A=1\n")
        component = self._component()
        assert presence_state(component, exec_ctx) == "absent"

        assert install_component(component, exec_ctx).status == "ok"
        assert is_present(component, exec_ctx)
        assert rc.read_bytes().startswith(b"# caf\xe9\nexport A=1\n")

        assert uninstall_component(component, exec_ctx).status == "ok"
        assert rc.read_bytes() == b"# caf\xe9\nexport A=1\n"

    def test_uninstall_cleans_legacy_directive(self, exec_ctx):
        rc = exec_ctx.user.path(".bashrc")
        rc.write_text("export A=1\n. $HOME/.config/myrpi/env\n")
        assert uninstall_component(self._component(), exec_ctx).status == "ok"
        assert rc.read_text() == "export A=1\n"


# ── Git aliases ─────────────────────────────────────────────────


class TestGitAliases:
    ALIASES = {"s": "status -sb", "co": "checkout"}

    def _component(self) -> Component:
        return Component(id="aliases", order=120, spec=GitAliasSpec(aliases=dict(self.ALIASES)))

    def test_round_trip(self, exec_ctx, runner):
        assert install_component(self._component(), exec_ctx).status == "ok"
        assert runner.git_store == {"alias.s": "status -sb", "alias.co": "checkout"}
        assert install_component(self._component(), exec_ctx).status == "skipped"

        assert uninstall_component(self._component(), exec_ctx).status == "ok"
        assert runner.git_store == {}
        assert uninstall_component(self._component(), exec_ctx).status == "skipped"

    def test_only_changed_aliases_written(self, exec_ctx, runner):
        runner.git_store["alias.s"] = "status -sb"
        runner.git_store["alias.co"] = "commit"
        install_component(self._component(), exec_ctx)
        sets = [c for c in runner.commands() if c[:3] == ["git", "config", "--global"] and c[3] != "--get"]
        assert sets == [["git", "config", "--global", "alias.co", "checkout"]]

    def test_unset_only_present(self, exec_ctx, runner):
        runner.git_store["alias.s"] = "status -sb"
        runner.git_store["alias.keep"] = "mine"
        uninstall_component(self._component(), exec_ctx)
        unsets = [c for c in runner.commands() if "--unset" in c]
        assert unsets == [["git", "config", "--global", "--unset", "alias.s"]]
        assert runner.git_store == {"alias.keep": "mine"}


def test_protected_paths_never_removed(exec_ctx):
    component = Component(
        id="bad", order=1,
        spec=ScriptSpec(url=SCRIPT_URL, binaries=[".local/bin/x"], user_paths=["~/"]),
    )
    exec_ctx.user.path(".local/bin").mkdir(parents=True)
    exec_ctx.user.path(".local/bin/x").write_text("x")
    receipt = uninstall_component(component, exec_ctx)
    assert receipt.failed
    assert Path(exec_ctx.user.home).is_dir()
