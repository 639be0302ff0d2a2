"""
L4 Execution — Download and checksum verification.

File download support and integrity checking.  Nothing fetched
from the network is moved into the install prefix until its
digest has been checked against a value we trust: a pinned
checksum, the publisher's checksum manifest, or the digest the
GitHub release API reports for the asset.  No digest, no install.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import urllib.error
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from myrpi import __version__
from myrpi.core.errors import ExternalToolFailure, VerificationFailed

logger = logging.getLogger(__name__)

_USER_AGENT = f"myrpi/{__version__}"
_CHUNK = 64 * 1024

_HEX_RE = re.compile(r"^[0-9a-fA-F]{32,128}$")
_ALGO_BY_HEX_LEN = {32: "md5", 40: "sha1", 64: "sha256", 96: "sha384", 128: "sha512"}
_GITHUB_ASSET_RE = re.compile(
    r"^https://github\.com/(?P<repo>[^/]+/[^/]+)/releases/download/(?P<tag>[^/]+)/(?P<name>[^/]+)$"
)


@dataclass(frozen=True)
class VerificationRecord:
    """Where a download came from and the digest it must have."""

    source: str
    expected: str          # "algo:hex"


def download_file(url: str, dest: Path, timeout: int = 120) -> None:
    """Stream ``url`` into ``dest``.

    Raises:
        ExternalToolFailure: On any HTTP or network error.  A partial
            file is removed before raising.
    """
    logger.info("Downloading %s", url)
    req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp, open(dest, "wb") as f:
            for chunk in iter(lambda: resp.read(_CHUNK), b""):
                f.write(chunk)
    except (urllib.error.URLError, OSError) as e:
        dest.unlink(missing_ok=True)
        raise ExternalToolFailure(f"Download failed: {url}: {e}") from e


def normalize_digest(expected: str) -> str:
    """Return ``algo:hex`` with a lower-case hex part.

    A bare hex string is taken to be sha256.
    """
    expected = expected.strip()
    if ":" in expected:
        algo, hex_part = expected.split(":", 1)
    else:
        algo, hex_part = "sha256", expected
    return f"{algo.lower()}:{hex_part.strip().lower()}"


def file_digest(path: Path, algo: str = "sha256") -> str:
    h = hashlib.new(algo)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_checksum(path: Path, expected: str) -> bool:
    """Verify file checksum.  Format: ``algo:hex`` or bare sha256 hex.

    Comparison is case-insensitive.

    Args:
        path: Path to the downloaded file.
        expected: Checksum string like ``sha256:abc123...``.

    Returns:
        True if the file's computed digest matches ``expected``.
    """
    algo, expected_hash = normalize_digest(expected).split(":", 1)
    try:
        actual = file_digest(path, algo)
    except ValueError:
        logger.error("Unsupported digest algorithm: %s", algo)
        return False
    return actual == expected_hash


def verify_or_raise(path: Path, record: VerificationRecord) -> None:
    """Check ``path`` against ``record``; delete it and raise on mismatch."""
    if verify_checksum(path, record.expected):
        logger.debug("Checksum ok for %s", record.source)
        return
    algo = normalize_digest(record.expected).split(":", 1)[0]
    try:
        actual = f"{algo}:{file_digest(path, algo)}"
    except ValueError:
        actual = ""
    path.unlink(missing_ok=True)
    raise VerificationFailed(record.source, normalize_digest(record.expected), actual)


def _labelled(digest: str, source: str) -> str:
    algo = _ALGO_BY_HEX_LEN.get(len(digest))
    if algo is None:
        raise VerificationFailed(
            source, "", message=f"Unsupported digest length {len(digest)} in checksum manifest for {source}"
        )
    return f"{algo}:{digest.lower()}"


def parse_checksum_manifest(text: str, asset_name: str) -> str | None:
    """Find ``asset_name``'s digest in a checksum manifest.

    Handles ``<hex>  <name>`` / ``<hex> *<name>`` lines (sha*sum
    output) and single-asset files that hold just a bare digest.
    The algorithm is inferred from the digest length.

    Returns:
        ``algo:<hex>`` or None when the asset is not listed.

    Raises:
        VerificationFailed: The listed digest has no known algorithm.
    """
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    for line in lines:
        parts = line.split()
        if len(parts) < 2:
            continue
        digest, name = parts[0], parts[-1].lstrip("*")
        if Path(name).name == asset_name and _HEX_RE.match(digest):
            return _labelled(digest, asset_name)

    if len(lines) == 1 and _HEX_RE.match(lines[0]):
        return _labelled(lines[0], asset_name)
    return None


def _digest_from_release_api(url: str, fetch: Callable[[str, Path], None], tmp_dir: Path) -> str | None:
    """Ask the GitHub release API for the asset's published digest."""
    m = _GITHUB_ASSET_RE.match(url)
    if not m:
        return None

    api_url = f"https://api.github.com/repos/{m['repo']}/releases/tags/{m['tag']}"
    meta_path = tmp_dir / "release.json"
    try:
        fetch(api_url, meta_path)
        data = json.loads(meta_path.read_text(encoding="utf-8"))
    except (ExternalToolFailure, OSError, ValueError) as e:
        logger.warning("Release metadata unavailable for %s: %s", m["repo"], e)
        return None

    for asset in data.get("assets", []):
        if asset.get("name") == m["name"] and asset.get("digest"):
            return normalize_digest(asset["digest"])
    return None


def resolve_expected_digest(
    *,
    url: str,
    asset_name: str,
    pinned: str,
    checksum_url: str,
    fetch: Callable[[str, Path], None],
    tmp_dir: Path,
) -> VerificationRecord:
    """Decide which digest ``url`` must match.

    Order: pinned value, publisher manifest, GitHub release API.

    Raises:
        VerificationFailed: When no trustworthy digest can be found.
    """
    if pinned:
        return VerificationRecord(url, normalize_digest(pinned))

    if checksum_url:
        manifest = tmp_dir / "checksums.txt"
        try:
            fetch(checksum_url, manifest)
            digest = parse_checksum_manifest(manifest.read_text(encoding="utf-8"), asset_name)
        except (ExternalToolFailure, OSError, UnicodeDecodeError) as e:
            logger.warning("Checksum manifest unavailable (%s): %s", checksum_url, e)
            digest = None
        if digest:
            return VerificationRecord(url, digest)
        logger.warning("%s not listed in %s", asset_name, checksum_url)

    digest = _digest_from_release_api(url, fetch, tmp_dir)
    if digest:
        return VerificationRecord(url, digest)

    raise VerificationFailed(url, "", message=f"No published digest for {url}, refusing to install")
