"""
L3 Detection — System package checking.

Read-only probes against the package database.
Uses subprocess for package manager queries.
"""

from __future__ import annotations

import logging
import subprocess

logger = logging.getLogger(__name__)


def is_pkg_installed(pkg: str, pkg_manager: str = "apt") -> bool:
    """Check if a single system package is installed.

      apt → dpkg-query -W -f='${Status}' PKG

    Args:
        pkg: Exact package name.
        pkg_manager: Only ``apt`` is supported on the target host.

    Returns:
        True if installed, False if not installed or check failed.
    """
    if pkg_manager != "apt":
        logger.warning("Unsupported package manager %s (checking %s)", pkg_manager, pkg)
        return False

    try:
        r = subprocess.run(
            ["dpkg-query", "-W", "-f=${Status}", pkg],
            capture_output=True, text=True, timeout=10,
        )
        return "install ok installed" in r.stdout
    except FileNotFoundError:
        # dpkg-query missing: not a Debian-family host
        logger.warning("Package checker not found (checking %s), inconclusive", pkg)
    except subprocess.TimeoutExpired:
        logger.warning("Timeout checking package %s, inconclusive", pkg)
    except OSError as e:
        logger.warning("Cannot check package %s: %s, inconclusive", pkg, e)
    return False

