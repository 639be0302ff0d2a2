"""
L4 Execution — Install transitions.

One executor per spec kind.  Every executor:
  - skips a component that is already present (unless forced),
  - raises ProvisionError subclasses internally,
  - returns a Receipt to the caller, never raising.
"""

from __future__ import annotations

import logging
import platform
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from myrpi.core.errors import ExternalToolFailure, ProvisionError
from myrpi.core.models.action import Operation, Receipt
from myrpi.core.models.component import (
    ArchiveSpec,
    CloneSpec,
    Component,
    GitAliasSpec,
    PackageSpec,
    ScriptSpec,
    ShellConfigSpec,
)
from myrpi.core.services.provision.detection.presence import is_present
from myrpi.core.services.provision.execution.archive import extract_archive, place_members, remove_any
from myrpi.core.services.provision.execution.download import (
    VerificationRecord,
    resolve_expected_digest,
    verify_or_raise,
)
from myrpi.core.services.provision.execution.git_config import install_aliases
from myrpi.core.services.provision.execution.shell_config import (
    add_marked_block,
    chown_to_user,
    make_user_dirs,
)

if TYPE_CHECKING:
    from myrpi.core.services.provision.context import ExecutionContext

logger = logging.getLogger(__name__)

_RECEIPT_KINDS = ("verification_failed", "external_tool_failure", "invalid_selection")


def _check(result: dict, what: str) -> dict:
    """Raise ExternalToolFailure for a failed runner result."""
    if not result["ok"]:
        raise ExternalToolFailure(f"{what}: {result.get('error', 'unknown error')}", result.get("stderr", ""))
    return result


def _scratch(ctx: ExecutionContext) -> tempfile.TemporaryDirectory:
    return tempfile.TemporaryDirectory(prefix="myrpi-", dir=ctx.tmp_root)


# ── Package ─────────────────────────────────────────────────────


def _install_package(spec: PackageSpec, ctx: ExecutionContext) -> str:
    notes: list[str] = []
    if spec.repository is not None and ctx.packages.add_repository(spec.repository):
        notes.append(f"repository {spec.repository.sources_path} configured")

    missing = ctx.packages.missing(spec.packages)
    if ctx.force:
        missing = list(spec.packages)
    ctx.packages.install(missing)
    if missing:
        notes.append(f"installed {', '.join(missing)}")
    return "; ".join(notes)


# ── Release archive ─────────────────────────────────────────────


def archive_url(spec: ArchiveSpec, url_template: str | None = None) -> str:
    """Fill ``{version}`` and ``{arch}`` into a URL template."""
    machine = platform.machine().lower()
    arch = spec.arch_names.get(machine, machine)
    return (url_template or spec.url).format(version=spec.version, arch=arch)


def _install_archive(spec: ArchiveSpec, ctx: ExecutionContext) -> str:
    url = archive_url(spec)
    asset_name = url.rsplit("/", 1)[-1]

    with _scratch(ctx) as tmp:
        tmp_dir = Path(tmp)
        record = resolve_expected_digest(
            url=url,
            asset_name=asset_name,
            pinned=spec.checksum,
            checksum_url=archive_url(spec, spec.checksum_url) if spec.checksum_url else "",
            fetch=ctx.fetch,
            tmp_dir=tmp_dir,
        )
        download = tmp_dir / asset_name
        ctx.fetch(url, download)
        verify_or_raise(download, record)

        root = extract_archive(download, tmp_dir / "extract")
        placed = place_members(root, spec.members, ctx.prefix)

    env = {"PATH": f"{ctx.prefix}/bin:/usr/local/bin:/usr/bin:/bin"}
    try:
        for cmd in spec.post_install:
            _check(ctx.run(cmd, as_user=ctx.user, env_overrides=env), " ".join(cmd))
    except ExternalToolFailure:
        # Half-set-up members would read as installed on the next run
        logger.warning("Post-install failed, removing placed files: %s", ", ".join(map(str, placed)))
        for path in placed:
            remove_any(path)
        raise

    version = f" {spec.version}" if spec.version else ""
    return f"placed{version}: {', '.join(str(p) for p in placed)}"


# ── Remote installer script ─────────────────────────────────────


def _install_script(component: Component, spec: ScriptSpec, ctx: ExecutionContext) -> str:
    with _scratch(ctx) as tmp:
        script = Path(tmp) / "install.sh"
        ctx.fetch(spec.url, script)
        if spec.sha256:
            verify_or_raise(script, VerificationRecord(spec.url, spec.sha256))
        else:
            logger.info("No pinned digest for %s installer, running unverified", component.id)
        body = script.read_text(encoding="utf-8")

    _check(
        ctx.run(["sh", "-s", "--", *spec.args], as_user=ctx.user, input_text=body),
        f"{component.id} installer",
    )

    if not is_present(component, ctx):
        raise ExternalToolFailure(
            f"{component.id} installer finished but {', '.join(spec.binaries)} not found"
        )
    return f"installed via {spec.url}"


# ── Git clone ───────────────────────────────────────────────────


def _install_clone(spec: CloneSpec, ctx: ExecutionContext) -> str:
    dest = ctx.user.path(spec.dest)
    if ctx.force and dest.exists():
        remove_any(dest)
    make_user_dirs(dest.parent, ctx.user)
    _check(
        ctx.run(["git", "clone", "--depth", "1", spec.repo, str(dest)], as_user=ctx.user),
        f"git clone {spec.repo}",
    )
    if not spec.keep_git:
        remove_any(dest / ".git")
    return f"cloned {spec.repo} into {dest}"


# ── Shell configuration ─────────────────────────────────────────


def _install_shell_config(spec: ShellConfigSpec, ctx: ExecutionContext) -> str:
    config_dir = ctx.user.path(spec.config_dir)
    make_user_dirs(config_dir, ctx.user)

    env_file = config_dir / spec.env_file
    created = not env_file.exists()
    env_file.write_text(spec.env_content, encoding="utf-8")
    if created:
        chown_to_user(env_file, ctx.user)

    rc = ctx.user.path(spec.rc_file)
    if add_marked_block(rc, spec.marker, spec.directive, owner=ctx.user):
        return f"wrote {env_file}, sourced from {rc}"
    return f"wrote {env_file}"


# ── Dispatcher ──────────────────────────────────────────────────


def _dispatch(component: Component, ctx: ExecutionContext) -> str:
    spec = component.spec
    if isinstance(spec, PackageSpec):
        return _install_package(spec, ctx)
    if isinstance(spec, ArchiveSpec):
        return _install_archive(spec, ctx)
    if isinstance(spec, ScriptSpec):
        return _install_script(component, spec, ctx)
    if isinstance(spec, CloneSpec):
        return _install_clone(spec, ctx)
    if isinstance(spec, ShellConfigSpec):
        return _install_shell_config(spec, ctx)
    if isinstance(spec, GitAliasSpec):
        written = install_aliases(spec.aliases, ctx.git)
        return f"set {len(written)} alias(es)"
    raise ProvisionError(f"Unsupported component kind: {component.kind}")


def failure_receipt(component_id: str, operation: Operation, exc: ProvisionError) -> Receipt:
    """Convert a ProvisionError into a failed Receipt tagged with its kind."""
    logger.error("%s: %s", component_id, exc)
    kind = exc.kind if exc.kind in _RECEIPT_KINDS else "unexpected"
    return Receipt.failure(
        component_id, operation, str(exc),
        error_kind=kind,
        output=getattr(exc, "stderr", ""),
    )


def install_component(component: Component, ctx: ExecutionContext) -> Receipt:
    """Bring ``component`` to present.

    Returns:
        Receipt — ``skipped`` if already present, ``ok`` after a
        successful transition, ``failed`` with an error kind otherwise.
    """
    if not ctx.force and is_present(component, ctx):
        logger.info("%s already installed", component.id)
        return Receipt.skip(component.id, "install", "already installed")

    logger.info("Installing %s", component.id)
    try:
        output = _dispatch(component, ctx)
    except ProvisionError as e:
        return failure_receipt(component.id, "install", e)
    return Receipt.success(component.id, "install", output)
