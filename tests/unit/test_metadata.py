"""Unit tests for the MetadataGenerator."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from wasmforge.core.errors import (
    IntegrityMismatchError,
    ManifestUnreadableError,
    ManifestWriteFailureError,
    MissingArtifactError,
    VersionConflictError,
)
from wasmforge.core.hasher import sha256_file
from wasmforge.core.metadata import MetadataGenerator, load_manifest

WASM_HEADER = b"\x00asm\x01\x00\x00\x00"


def _artifact(directory: Path, name: str, payload: bytes = b"module") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(WASM_HEADER + payload)
    return path


@pytest.fixture
def go_dir(tmp_path: Path) -> Path:
    return tmp_path / "runtimes" / "go"


class TestGenerate:
    def test_first_version_creates_manifest(self, metadata: MetadataGenerator, go_dir: Path):
        artifact = _artifact(go_dir, "go-1.23.wasm")
        manifest = metadata.generate("go", "1.23", artifact, features=["gc"])

        on_disk = json.loads((go_dir / "manifest.json").read_text())
        assert on_disk["language"] == "go"
        assert on_disk["latest"] == "1.23"
        entry = on_disk["versions"]["1.23"]
        assert entry["file"] == "go-1.23.wasm"
        assert entry["size"] == artifact.stat().st_size
        assert entry["sha256"] == sha256_file(artifact)
        assert entry["wasi"] == "wasip1"
        assert entry["features"] == ["gc"]
        assert entry["released"] == "2026-01-01T00:00:00Z"
        assert manifest == load_manifest(go_dir / "manifest.json")

    def test_latest_is_most_recent_not_highest(self, metadata: MetadataGenerator, go_dir: Path):
        metadata.generate("go", "1.23", _artifact(go_dir, "go-1.23.wasm", b"new"))
        manifest = metadata.generate("go", "1.22", _artifact(go_dir, "go-1.22.wasm", b"old"))
        assert manifest.latest == "1.22"
        assert manifest.sorted_versions() == ["1.22", "1.23"]

    def test_history_is_kept(self, metadata: MetadataGenerator, go_dir: Path):
        first = metadata.generate("go", "1.22", _artifact(go_dir, "go-1.22.wasm", b"a"))
        second = metadata.generate("go", "1.23", _artifact(go_dir, "go-1.23.wasm", b"b"))
        assert second.versions["1.22"] == first.versions["1.22"]

    def test_rerun_with_same_content_is_idempotent(self, metadata: MetadataGenerator, go_dir: Path):
        artifact = _artifact(go_dir, "go-1.23.wasm")
        first = metadata.generate("go", "1.23", artifact)
        metadata.generate("go", "1.22", _artifact(go_dir, "go-1.22.wasm", b"other"))
        again = metadata.generate("go", "1.23", artifact)
        assert again.latest == "1.23"
        # original release time preserved
        assert again.versions["1.23"] == first.versions["1.23"]

    def test_rerun_with_different_tags_warns(
        self, metadata: MetadataGenerator, go_dir: Path, caplog
    ):
        artifact = _artifact(go_dir, "go-1.23.wasm")
        first = metadata.generate("go", "1.23", artifact)
        with caplog.at_level("WARNING", logger="wasmforge.core.metadata"):
            again = metadata.generate(
                "go", "1.23", artifact, abi="wasip2", features=["threads"]
            )
        assert again.versions["1.23"] == first.versions["1.23"]
        assert "already recorded with abi=wasip1" in caplog.text

    def test_rerun_with_same_tags_is_quiet(
        self, metadata: MetadataGenerator, go_dir: Path, caplog
    ):
        artifact = _artifact(go_dir, "go-1.23.wasm")
        metadata.generate("go", "1.23", artifact)
        with caplog.at_level("WARNING", logger="wasmforge.core.metadata"):
            metadata.generate("go", "1.23", artifact)
        assert not [r for r in caplog.records if r.levelname == "WARNING"]

    def test_rebuild_with_different_content_conflicts(self, metadata: MetadataGenerator, go_dir: Path):
        metadata.generate("go", "1.23", _artifact(go_dir, "go-1.23.wasm", b"one"))
        before = (go_dir / "manifest.json").read_text()
        _artifact(go_dir, "go-1.23.wasm", b"two")
        with pytest.raises(VersionConflictError):
            metadata.generate("go", "1.23", go_dir / "go-1.23.wasm")
        assert (go_dir / "manifest.json").read_text() == before

    def test_overwrite_allowed(self, clock, go_dir: Path):
        generator = MetadataGenerator(allow_overwrite=True, clock=clock)
        generator.generate("go", "1.23", _artifact(go_dir, "go-1.23.wasm", b"one"))
        artifact = _artifact(go_dir, "go-1.23.wasm", b"two")
        manifest = generator.generate("go", "1.23", artifact)
        assert manifest.versions["1.23"].digest == sha256_file(artifact)

    def test_custom_abi(self, metadata: MetadataGenerator, tmp_path: Path):
        artifact = _artifact(tmp_path / "runtimes" / "rust", "rust-1.84.wasm")
        manifest = metadata.generate("rust", "1.84", artifact, abi="wasip2")
        assert manifest.latest_record.abi == "wasip2"


class TestGenerateErrors:
    def test_missing_artifact(self, metadata: MetadataGenerator, go_dir: Path):
        with pytest.raises(MissingArtifactError) as excinfo:
            metadata.generate("go", "1.23", go_dir / "go-1.23.wasm")
        assert excinfo.value.step == "metadata"
        assert not (go_dir / "manifest.json").exists()

    def test_unreadable_artifact(
        self, metadata: MetadataGenerator, go_dir: Path, monkeypatch
    ):
        artifact = _artifact(go_dir, "go-1.23.wasm")

        def _denied(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr("wasmforge.core.metadata.sha256_file", _denied)
        with pytest.raises(MissingArtifactError, match="Cannot read") as excinfo:
            metadata.generate("go", "1.23", artifact)
        assert excinfo.value.step == "metadata"
        assert not (go_dir / "manifest.json").exists()

    def test_expected_digest_mismatch(self, metadata: MetadataGenerator, go_dir: Path):
        artifact = _artifact(go_dir, "go-1.23.wasm")
        with pytest.raises(IntegrityMismatchError):
            metadata.generate("go", "1.23", artifact, expected_digest="0" * 64)

    def test_expected_size_mismatch(self, metadata: MetadataGenerator, go_dir: Path):
        artifact = _artifact(go_dir, "go-1.23.wasm")
        with pytest.raises(IntegrityMismatchError):
            metadata.generate("go", "1.23", artifact, expected_size=1)

    def test_malformed_manifest_is_fatal(self, metadata: MetadataGenerator, go_dir: Path):
        artifact = _artifact(go_dir, "go-1.23.wasm")
        (go_dir / "manifest.json").write_text("{not json")
        with pytest.raises(ManifestUnreadableError):
            metadata.generate("go", "1.23", artifact)

    def test_manifest_of_other_language(self, metadata: MetadataGenerator, go_dir: Path):
        metadata.generate("go", "1.23", _artifact(go_dir, "go-1.23.wasm"))
        with pytest.raises(ManifestUnreadableError, match="belongs to"):
            metadata.generate("rust", "1.84", _artifact(go_dir, "rust-1.84.wasm"))

    def test_write_failure(self, metadata: MetadataGenerator, go_dir: Path, monkeypatch):
        artifact = _artifact(go_dir, "go-1.23.wasm")

        def _refuse(path, text):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr("wasmforge.core.metadata.atomic_write_text", _refuse)
        with pytest.raises(ManifestWriteFailureError) as excinfo:
            metadata.generate("go", "1.23", artifact)
        assert excinfo.value.code == "ManifestWriteFailure"


class TestCheckPublishable:
    def test_unrecorded_version_allowed(self, metadata: MetadataGenerator, go_dir: Path):
        metadata.check_publishable("go", "1.23", go_dir / "go-1.23.wasm", size=1, digest="ab" * 32)

    def test_same_content_allowed(self, metadata: MetadataGenerator, go_dir: Path):
        artifact = _artifact(go_dir, "go-1.23.wasm")
        metadata.generate("go", "1.23", artifact)
        metadata.check_publishable(
            "go", "1.23", artifact,
            size=artifact.stat().st_size, digest=sha256_file(artifact).upper(),
        )

    def test_different_content_rejected(self, metadata: MetadataGenerator, go_dir: Path):
        artifact = _artifact(go_dir, "go-1.23.wasm")
        metadata.generate("go", "1.23", artifact)
        with pytest.raises(VersionConflictError):
            metadata.check_publishable("go", "1.23", artifact, size=3, digest="ab" * 32)

    def test_overwrite_allowed(self, clock, go_dir: Path):
        generator = MetadataGenerator(allow_overwrite=True, clock=clock)
        artifact = _artifact(go_dir, "go-1.23.wasm")
        generator.generate("go", "1.23", artifact)
        generator.check_publishable("go", "1.23", artifact, size=3, digest="ab" * 32)
