"""
L3 Detection — Component presence.

``is_present``: every artifact the component owns is in place.
``is_absent``: no artifact the component owns is left.

A component can be neither (half installed, or data kept after an
uninstall).  These functions READ system state but never WRITE, and
never raise: a check that cannot be completed is logged as
inconclusive and treated as absent.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from myrpi.core.models.component import (
    ArchiveSpec,
    CloneSpec,
    Component,
    GitAliasSpec,
    PackageSpec,
    ScriptSpec,
    ShellConfigSpec,
)
from myrpi.core.services.provision.domain.marked_block import has_block, has_remnant

if TYPE_CHECKING:
    from myrpi.core.services.provision.context import ExecutionContext

logger = logging.getLogger(__name__)


def _exists(path: Path) -> bool:
    return os.path.lexists(path)


# ── Owned paths per kind ────────────────────────────────────────


def binary_paths(component: Component, ctx: ExecutionContext) -> list[Path]:
    """Paths whose presence means the component is installed."""
    spec = component.spec
    if isinstance(spec, ArchiveSpec):
        return [ctx.prefix / dst for dst in spec.members.values()]
    if isinstance(spec, ScriptSpec):
        return [ctx.user.path(p) for p in spec.binaries]
    if isinstance(spec, CloneSpec):
        return [ctx.user.path(spec.dest)]
    if isinstance(spec, ShellConfigSpec):
        return [ctx.user.path(spec.config_dir) / spec.env_file]
    return []


def owned_paths(component: Component, ctx: ExecutionContext) -> list[Path]:
    """Every filesystem path attributed to the component."""
    spec = component.spec
    paths = binary_paths(component, ctx)
    if isinstance(spec, (ArchiveSpec, ScriptSpec, CloneSpec)):
        paths += [ctx.user.path(p) for p in spec.user_paths]
    if isinstance(spec, (ArchiveSpec, ScriptSpec)):
        paths += [ctx.user.path(p) for p in spec.data_dirs]
    if isinstance(spec, ShellConfigSpec):
        paths.append(ctx.user.path(spec.config_dir))
    return paths


# ── Checks ──────────────────────────────────────────────────────


def _rc_text(spec: ShellConfigSpec, ctx: ExecutionContext) -> str:
    rc = ctx.user.path(spec.rc_file)
    if not rc.is_file():
        return ""
    return rc.read_text(encoding="utf-8", errors="surrogateescape")


def _present(component: Component, ctx: ExecutionContext) -> bool:
    spec = component.spec
    if isinstance(spec, PackageSpec):
        if spec.repository is not None and not ctx.packages.repository_configured(spec.repository):
            return False
        return all(ctx.packages.is_installed(p) for p in spec.packages)
    if isinstance(spec, GitAliasSpec):
        return all(ctx.git.get_alias(name) == value for name, value in spec.aliases.items())
    if isinstance(spec, ShellConfigSpec):
        if not all(_exists(p) for p in binary_paths(component, ctx)):
            return False
        return has_block(_rc_text(spec, ctx), spec.marker, spec.directive)
    paths = binary_paths(component, ctx)
    return bool(paths) and all(_exists(p) for p in paths)


def _absent(component: Component, ctx: ExecutionContext) -> bool:
    spec = component.spec
    if isinstance(spec, PackageSpec):
        if spec.repository is not None and ctx.packages.repository_configured(spec.repository):
            return False
        return not any(ctx.packages.is_installed(p) for p in spec.packages)
    if isinstance(spec, GitAliasSpec):
        return all(ctx.git.get_alias(name) is None for name in spec.aliases)
    if isinstance(spec, ShellConfigSpec):
        if has_remnant(_rc_text(spec, ctx), spec.marker, spec.directive):
            return False
    return not any(_exists(p) for p in owned_paths(component, ctx))


def is_present(component: Component, ctx: ExecutionContext) -> bool:
    """Whether all of the component's artifacts are in place."""
    try:
        return _present(component, ctx)
    except (OSError, ValueError) as e:
        logger.warning("Presence check for %s inconclusive: %s", component.id, e)
        return False


def is_absent(component: Component, ctx: ExecutionContext) -> bool:
    """Whether none of the component's artifacts are left."""
    try:
        return _absent(component, ctx)
    except (OSError, ValueError) as e:
        logger.warning("Absence check for %s inconclusive: %s", component.id, e)
        return True


def presence_state(component: Component, ctx: ExecutionContext) -> str:
    """``present``, ``absent`` or ``partial``."""
    if is_present(component, ctx):
        return "present"
    if is_absent(component, ctx):
        return "absent"
    return "partial"


def presence_report(components: list[Component], ctx: ExecutionContext) -> list[dict[str, str]]:
    """One row per component for ``myrpi status``."""
    return [
        {
            "id": c.id,
            "label": c.display_name,
            "kind": c.kind,
            "state": presence_state(c, ctx),
        }
        for c in components
    ]
