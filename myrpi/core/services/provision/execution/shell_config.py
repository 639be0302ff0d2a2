"""
L4 Execution — Shell rc file mutation.

File I/O around the pure transforms in ``domain/marked_block``.
Writes are IDEMPOTENT: an existing block is left alone, and
removing a block that is not there is a no-op.  Files are read and
written with ``surrogateescape`` so non-UTF-8 bytes survive.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from myrpi.core.context import ActualUserContext
from myrpi.core.services.provision.domain.marked_block import add_block, remove_block

logger = logging.getLogger(__name__)


def chown_to_user(path: Path, user: ActualUserContext | None) -> None:
    """Hand ``path`` to the actual user when we run as someone else."""
    if user is None or not user.needs_switch:
        return
    os.chown(path, user.uid, user.gid, follow_symlinks=False)


def make_user_dirs(path: Path, user: ActualUserContext | None) -> None:
    """``mkdir -p`` that chowns every directory it creates."""
    missing: list[Path] = []
    current = path
    while not current.exists():
        missing.append(current)
        current = current.parent
    for directory in reversed(missing):
        directory.mkdir()
        chown_to_user(directory, user)


def add_marked_block(
    path: Path,
    marker: str,
    payload: str,
    owner: ActualUserContext | None = None,
) -> bool:
    """Append ``marker`` + ``payload`` to ``path`` unless already there.

    Creates the file (and its parents) when missing.

    Returns:
        True if the file was changed.
    """
    existed = path.exists()
    text = path.read_text(encoding="utf-8", errors="surrogateescape") if existed else ""
    new_text, changed = add_block(text, marker, payload)
    if not changed:
        logger.info("Marker already present in %s", path)
        return False

    make_user_dirs(path.parent, owner)
    path.write_text(new_text, encoding="utf-8", errors="surrogateescape")
    if not existed:
        chown_to_user(path, owner)
    logger.info("Added marked block to %s", path)
    return True


def remove_marked_block(path: Path, marker: str, payload: str) -> bool:
    """Remove the block (and legacy orphans) from ``path``.

    Returns:
        True if the file was changed; False for a missing file or
        one without the block.
    """
    if not path.is_file():
        logger.info("%s does not exist, nothing to remove", path)
        return False

    text = path.read_text(encoding="utf-8", errors="surrogateescape")
    new_text, changed = remove_block(text, marker, payload)
    if not changed:
        logger.info("No marked block in %s", path)
        return False

    path.write_text(new_text, encoding="utf-8", errors="surrogateescape")
    logger.info("Removed marked block from %s", path)
    return True
