"""
Tests for checksum verification and expected-digest resolution.
"""

import hashlib
import json
from pathlib import Path

import pytest

from myrpi.core.errors import VerificationFailed
from myrpi.core.services.provision.execution.download import (
    VerificationRecord,
    parse_checksum_manifest,
    resolve_expected_digest,
    verify_checksum,
    verify_or_raise,
)

DATA = b"release bytes"
DIGEST = hashlib.sha256(DATA).hexdigest()


@pytest.fixture
def artifact(tmp_path: Path) -> Path:
    path = tmp_path / "tool.tar.gz"
    path.write_bytes(DATA)
    return path


class TestVerifyChecksum:
    def test_algo_prefixed(self, artifact: Path):
        assert verify_checksum(artifact, f"sha256:{DIGEST}")

    def test_bare_hex_is_sha256(self, artifact: Path):
        assert verify_checksum(artifact, DIGEST)

    def test_case_insensitive(self, artifact: Path):
        assert verify_checksum(artifact, f"SHA256:{DIGEST.upper()}")

    def test_mismatch(self, artifact: Path):
        assert not verify_checksum(artifact, "sha256:" + "0" * 64)

    def test_unknown_algorithm(self, artifact: Path):
        assert not verify_checksum(artifact, "nope:abcd")

    def test_verify_or_raise_deletes_file(self, artifact: Path):
        with pytest.raises(VerificationFailed) as exc:
            verify_or_raise(artifact, VerificationRecord("https://x/tool", "sha256:" + "0" * 64))
        assert not artifact.exists()
        assert exc.value.actual == f"sha256:{DIGEST}"


class TestManifest:
    def test_sha256sum_format(self):
        text = f"{'a' * 64}  other.tar.gz\n{DIGEST.upper()} *tool.tar.gz\n"
        assert parse_checksum_manifest(text, "tool.tar.gz") == f"sha256:{DIGEST}"

    def test_single_bare_digest(self):
        assert parse_checksum_manifest(f"{DIGEST}\n", "tool.tar.gz") == f"sha256:{DIGEST}"

    def test_not_listed(self):
        assert parse_checksum_manifest(f"{DIGEST}  other.zip\n", "tool.tar.gz") is None

    def test_sha512_manifest(self):
        digest = hashlib.sha512(DATA).hexdigest()
        assert parse_checksum_manifest(f"{digest}  tool.tar.gz\n", "tool.tar.gz") == f"sha512:{digest}"

    def test_unknown_digest_length(self):
        with pytest.raises(VerificationFailed, match="Unsupported digest length 50"):
            parse_checksum_manifest(f"{'a' * 50}  tool.tar.gz\n", "tool.tar.gz")


class TestResolveExpectedDigest:
    URL = "https://github.com/o/tool/releases/download/v1.0/tool.tar.gz"

    def test_pinned_wins(self, tmp_path: Path, fetcher):
        record = resolve_expected_digest(
            url=self.URL, asset_name="tool.tar.gz", pinned=DIGEST.upper(),
            checksum_url="https://example/sums", fetch=fetcher, tmp_dir=tmp_path,
        )
        assert record.expected == f"sha256:{DIGEST}"
        assert fetcher.fetched == []

    def test_manifest(self, tmp_path: Path, fetcher):
        fetcher.add("https://example/sums", f"{DIGEST}  tool.tar.gz\n".encode())
        record = resolve_expected_digest(
            url=self.URL, asset_name="tool.tar.gz", pinned="",
            checksum_url="https://example/sums", fetch=fetcher, tmp_dir=tmp_path,
        )
        assert record.expected == f"sha256:{DIGEST}"

    def test_release_api_digest(self, tmp_path: Path, fetcher):
        meta = {"assets": [{"name": "tool.tar.gz", "digest": f"sha256:{DIGEST}"}]}
        fetcher.add("https://api.github.com/repos/o/tool/releases/tags/v1.0", json.dumps(meta).encode())
        record = resolve_expected_digest(
            url=self.URL, asset_name="tool.tar.gz", pinned="",
            checksum_url="", fetch=fetcher, tmp_dir=tmp_path,
        )
        assert record.expected == f"sha256:{DIGEST}"

    def test_no_digest_fails_closed(self, tmp_path: Path, fetcher):
        with pytest.raises(VerificationFailed):
            resolve_expected_digest(
                url="https://example.org/tool.tar.gz", asset_name="tool.tar.gz", pinned="",
                checksum_url="", fetch=fetcher, tmp_dir=tmp_path,
            )
