"""
L4 Execution — Release archive extraction and placement.

Archives are unpacked into a scratch directory, every member is
staged next to its destination inside the install prefix, and
only then swapped in with ``os.replace``.  If any member fails,
everything already swapped is rolled back so the prefix is left
exactly as it was.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import zipfile
from pathlib import Path

from myrpi.core.errors import ExternalToolFailure

logger = logging.getLogger(__name__)

_STAGE_SUFFIX = ".myrpi-new"
_BACKUP_SUFFIX = ".myrpi-old"


def remove_any(path: Path) -> None:
    """Remove a file, symlink or directory tree.  Missing is fine."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif os.path.lexists(path):
        path.unlink()


def _safe_zip_extract(zf: zipfile.ZipFile, dest: Path) -> None:
    root = dest.resolve()
    for info in zf.infolist():
        target = (dest / info.filename).resolve()
        if target != root and root not in target.parents:
            raise ExternalToolFailure(f"Unsafe path in archive: {info.filename}")
    zf.extractall(dest)


def extract_archive(archive: Path, dest: Path) -> Path:
    """Unpack ``archive`` into ``dest`` and return the content root.

    Supports tar (gz/xz/bz2) and zip.  When the archive holds a
    single top-level directory, that directory is the content root.
    """
    dest.mkdir(parents=True, exist_ok=True)
    try:
        if zipfile.is_zipfile(archive):
            with zipfile.ZipFile(archive) as zf:
                _safe_zip_extract(zf, dest)
        else:
            with tarfile.open(archive, "r:*") as tf:
                tf.extractall(dest, filter="data")
    except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
        raise ExternalToolFailure(f"Cannot extract {archive.name}: {e}") from e

    entries = list(dest.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return dest


def _stage_path(target: Path) -> Path:
    return target.with_name(f".{target.name}{_STAGE_SUFFIX}")


def _backup_path(target: Path) -> Path:
    return target.with_name(f".{target.name}{_BACKUP_SUFFIX}")


def _copy_into(src: Path, dst: Path) -> None:
    if src.is_dir() and not src.is_symlink():
        shutil.copytree(src, dst, symlinks=True)
    else:
        shutil.copy2(src, dst, follow_symlinks=False)


def place_members(root: Path, members: dict[str, str], prefix: Path) -> list[Path]:
    """Stage and atomically swap archive members into ``prefix``.

    Args:
        root: Extracted content root.
        members: archive-relative source → prefix-relative destination.
        prefix: Install prefix (e.g. ``/usr/local``).

    Returns:
        Destination paths now in place.

    Raises:
        ExternalToolFailure: A member is missing or a filesystem step
            failed.  The prefix is restored before raising.
    """
    plan: list[tuple[Path, Path]] = []
    for src_rel, dst_rel in members.items():
        src = root / src_rel
        if not os.path.lexists(src):
            raise ExternalToolFailure(f"Archive member missing: {src_rel}")
        plan.append((src, prefix / dst_rel))

    staged: list[tuple[Path, Path]] = []
    swapped: list[tuple[Path, Path | None]] = []
    try:
        for src, target in plan:
            target.parent.mkdir(parents=True, exist_ok=True)
            stage = _stage_path(target)
            remove_any(stage)
            _copy_into(src, stage)
            staged.append((stage, target))

        for stage, target in staged:
            backup: Path | None = None
            if os.path.lexists(target):
                backup = _backup_path(target)
                remove_any(backup)
                os.rename(target, backup)
            swapped.append((target, backup))
            os.replace(stage, target)
    except OSError as e:
        logger.error("Placement failed, rolling back: %s", e)
        _rollback(staged, swapped)
        raise ExternalToolFailure(f"Cannot place files into {prefix}: {e}") from e

    for target, backup in swapped:
        if backup is not None:
            remove_any(backup)
        if target.parent.name == "bin" and target.is_file():
            os.chmod(target, 0o755)

    placed = [target for target, _ in swapped]
    logger.info("Placed %d item(s) into %s", len(placed), prefix)
    return placed


def _rollback(staged: list[tuple[Path, Path]], swapped: list[tuple[Path, Path | None]]) -> None:
    for target, backup in reversed(swapped):
        try:
            remove_any(target)
            if backup is not None and os.path.lexists(backup):
                os.rename(backup, target)
        except OSError as e:
            logger.error("Rollback of %s incomplete: %s", target, e)

    for stage, _ in staged:
        try:
            remove_any(stage)
        except OSError as e:
            logger.warning("Could not remove staging path %s: %s", stage, e)
