"""
L4 Execution — Uninstall transitions.

Mirrors ``install.py``: only artifacts attributed to the component
being removed are touched.  Missing paths are logged as already
absent, never treated as errors.  A manager's data directory (every
runtime it installed) goes only after its own confirmation.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from myrpi.core.errors import ExternalToolFailure, ProvisionError
from myrpi.core.models.action import Receipt
from myrpi.core.models.component import (
    ArchiveSpec,
    CloneSpec,
    Component,
    GitAliasSpec,
    PackageSpec,
    ScriptSpec,
    ShellConfigSpec,
)
from myrpi.core.services.provision.detection.presence import binary_paths, is_absent
from myrpi.core.services.provision.execution.archive import remove_any
from myrpi.core.services.provision.execution.git_config import remove_aliases
from myrpi.core.services.provision.execution.install import failure_receipt
from myrpi.core.services.provision.execution.shell_config import remove_marked_block

if TYPE_CHECKING:
    from myrpi.core.services.provision.context import ExecutionContext

logger = logging.getLogger(__name__)


def _protected(ctx: ExecutionContext) -> set[Path]:
    return {Path("/"), ctx.user.home, ctx.prefix, ctx.prefix / "bin"}


def remove_path(path: Path, ctx: ExecutionContext) -> bool:
    """Delete one owned path.  Returns True if something was removed."""
    if path in _protected(ctx):
        raise ExternalToolFailure(f"Refusing to remove {path}")
    if not os.path.lexists(path):
        logger.info("%s already absent", path)
        return False
    try:
        remove_any(path)
    except OSError as e:
        raise ExternalToolFailure(f"Cannot remove {path}: {e}") from e
    logger.info("Removed %s", path)
    return True


def _remove_paths(paths: list[Path], ctx: ExecutionContext) -> list[Path]:
    return [p for p in paths if remove_path(p, ctx)]


def _remove_data_dirs(component: Component, data_dirs: list[str], ctx: ExecutionContext) -> str:
    """Remove manager data directories behind the confirmation gate."""
    paths = [ctx.user.path(d) for d in data_dirs]
    existing = [p for p in paths if os.path.lexists(p)]
    if not existing:
        return ""

    listing = ", ".join(str(p) for p in existing)
    prompt = f"Also remove {listing}? This deletes every runtime {component.display_name} manages"
    if not ctx.confirm(prompt):
        logger.info("Keeping %s data: %s", component.id, listing)
        return f"kept data: {listing}"

    _remove_paths(existing, ctx)
    return f"removed data: {listing}"


# ── Per kind ────────────────────────────────────────────────────


def _uninstall_package(spec: PackageSpec, ctx: ExecutionContext) -> str:
    present = [p for p in spec.packages if ctx.packages.is_installed(p)]
    errors: list[str] = []
    for pkg in present:
        try:
            ctx.packages.remove([pkg])
        except ExternalToolFailure as e:
            errors.append(str(e))

    if spec.repository is not None:
        ctx.packages.remove_repository(spec.repository)

    if errors:
        raise ExternalToolFailure("; ".join(errors))
    return f"removed {', '.join(present)}" if present else ""


def _uninstall_files(component: Component, ctx: ExecutionContext) -> str:
    spec = component.spec
    paths = binary_paths(component, ctx) + [ctx.user.path(p) for p in spec.user_paths]
    removed = _remove_paths(paths, ctx)
    notes = [f"removed {len(removed)} path(s)"]

    data_dirs = getattr(spec, "data_dirs", [])
    if data_dirs:
        note = _remove_data_dirs(component, data_dirs, ctx)
        if note:
            notes.append(note)
    return "; ".join(notes)


def _uninstall_shell_config(spec: ShellConfigSpec, ctx: ExecutionContext) -> str:
    rc = ctx.user.path(spec.rc_file)
    notes: list[str] = []
    if remove_marked_block(rc, spec.marker, spec.directive):
        notes.append(f"cleaned {rc}")
    if remove_path(ctx.user.path(spec.config_dir), ctx):
        notes.append(f"removed {ctx.user.path(spec.config_dir)}")
    return "; ".join(notes)


def _dispatch(component: Component, ctx: ExecutionContext) -> str:
    spec = component.spec
    if isinstance(spec, PackageSpec):
        return _uninstall_package(spec, ctx)
    if isinstance(spec, (ArchiveSpec, ScriptSpec, CloneSpec)):
        return _uninstall_files(component, ctx)
    if isinstance(spec, ShellConfigSpec):
        return _uninstall_shell_config(spec, ctx)
    if isinstance(spec, GitAliasSpec):
        removed = remove_aliases(spec.aliases, ctx.git)
        return f"unset {len(removed)} alias(es)"
    raise ProvisionError(f"Unsupported component kind: {component.kind}")


def uninstall_component(component: Component, ctx: ExecutionContext) -> Receipt:
    """Bring ``component`` to absent.

    Returns:
        Receipt — ``skipped`` if nothing is installed, ``ok`` after a
        successful transition, ``failed`` with an error kind otherwise.
    """
    if is_absent(component, ctx):
        logger.info("%s not installed", component.id)
        return Receipt.skip(component.id, "uninstall", "not installed")

    logger.info("Uninstalling %s", component.id)
    try:
        output = _dispatch(component, ctx)
    except ProvisionError as e:
        return failure_receipt(component.id, "uninstall", e)
    return Receipt.success(component.id, "uninstall", output)
