"""Metadata Generator — record a verified artifact in its language manifest.

The manifest lives next to the artifact (``runtimes/<language>/manifest.json``).
Published versions are history: a version may be recorded again only with
identical content, unless overwriting is explicitly allowed.  ``latest``
always moves to the version just processed; there is no version ordering.

Writes are atomic but not locked: two processes writing the same manifest
may lose an update.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from wasmforge.core.errors import (
    IntegrityMismatchError,
    ManifestUnreadableError,
    ManifestWriteFailureError,
    MissingArtifactError,
    VersionConflictError,
)
from wasmforge.core.hasher import digests_match, sha256_file
from wasmforge.core.storage import atomic_write_text
from wasmforge.models.manifest import RuntimeManifest, VersionRecord, utc_now

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"


def load_manifest(path: Path) -> RuntimeManifest:
    """Read and validate a runtime manifest.  Raises ``ManifestUnreadableError``."""
    try:
        return RuntimeManifest.from_json(Path(path).read_bytes())
    except OSError as exc:
        raise ManifestUnreadableError(f"Cannot read {path}: {exc}") from exc
    except ValidationError as exc:
        raise ManifestUnreadableError(
            f"Malformed manifest {path}: {exc.error_count()} error(s): "
            f"{exc.errors()[0]['msg']}"
        ) from exc


class MetadataGenerator:
    """Creates and appends to per-language runtime manifests.

    Parameters
    ----------
    allow_overwrite:
        Permit replacing an existing version whose file, size or digest
        differs.  Off by default: such a rebuild raises ``VersionConflictError``.
    clock:
        Source of the ``released`` timestamp.
    """

    def __init__(
        self,
        *,
        allow_overwrite: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.allow_overwrite = allow_overwrite
        self._clock = clock

    @staticmethod
    def manifest_path(artifact: Path) -> Path:
        return Path(artifact).parent / MANIFEST_FILENAME

    def check_publishable(
        self,
        language: str,
        version: str,
        destination: Path,
        *,
        size: int,
        digest: str,
    ) -> None:
        """Raise ``VersionConflictError`` if publishing to *destination* would
        rewrite a recorded version with different bytes.

        Called before the artifact is copied into the runtimes directory so a
        rejected rebuild leaves the published file untouched.
        """
        path = self.manifest_path(destination)
        if self.allow_overwrite or not path.exists():
            return
        existing = load_manifest(path).get(version)
        if existing is None:
            return
        if (existing.file, existing.size, existing.digest) != (
            Path(destination).name, size, digest.strip().lower()
        ):
            raise _conflict(language, version, existing, size, digest)

    def generate(
        self,
        language: str,
        version: str,
        artifact: Path,
        *,
        abi: str = "wasip1",
        features: Sequence[str] = (),
        expected_size: int | None = None,
        expected_digest: str | None = None,
    ) -> RuntimeManifest:
        """Record *artifact* as *version* of *language* and return the new manifest."""
        artifact = Path(artifact)
        if not artifact.is_file():
            raise MissingArtifactError(f"WASM file not found: {artifact}", step="metadata")

        try:
            size = artifact.stat().st_size
            digest = sha256_file(artifact)
        except OSError as exc:
            raise MissingArtifactError(
                f"Cannot read {artifact}: {exc}", step="metadata"
            ) from exc
        if expected_size is not None and expected_size != size:
            raise IntegrityMismatchError(
                f"{artifact}: expected {expected_size} bytes, found {size}",
                step="metadata",
            )
        if expected_digest is not None and not digests_match(expected_digest, digest):
            raise IntegrityMismatchError(
                f"{artifact}: expected sha256 {expected_digest}, found {digest}",
                step="metadata",
            )

        record = VersionRecord(
            file=artifact.name,
            size=size,
            digest=digest,
            released=self._clock(),
            abi=abi,
            features=list(features),
        )

        path = self.manifest_path(artifact)
        if path.exists():
            current = load_manifest(path)
            if current.language != language:
                raise ManifestUnreadableError(
                    f"{path} belongs to {current.language!r}, not {language!r}"
                )
            manifest = self._merge(current, version, record)
        else:
            manifest = RuntimeManifest.initial(language, version, record)

        try:
            atomic_write_text(path, manifest.to_json())
        except OSError as exc:
            raise ManifestWriteFailureError(f"Cannot write {path}: {exc}") from exc

        logger.info(
            "Metadata generated: manifest=%s language=%s version=%s size=%d sha256=%s",
            path, language, version, size, digest,
        )
        return manifest

    def _merge(
        self, current: RuntimeManifest, version: str, record: VersionRecord
    ) -> RuntimeManifest:
        existing = current.get(version)
        if existing is None:
            return current.with_version(version, record)
        if existing.same_content(record):
            if (existing.abi, existing.features) != (record.abi, record.features):
                logger.warning(
                    "%s %s is already recorded with abi=%s features=%s; "
                    "keeping it and ignoring abi=%s features=%s",
                    current.language, version, existing.abi, existing.features,
                    record.abi, record.features,
                )
            # Re-run of an already published build: keep the original record.
            return current.with_version(version, existing)
        if not self.allow_overwrite:
            raise _conflict(current.language, version, existing, record.size, record.digest)
        logger.warning(
            "Overwriting published %s %s: sha256 %s -> %s",
            current.language, version, existing.digest, record.digest,
        )
        return current.with_version(version, record)


def _conflict(
    language: str, version: str, existing: VersionRecord, size: int, digest: str
) -> VersionConflictError:
    return VersionConflictError(
        f"{language} {version} is already published as "
        f"{existing.file} ({existing.size} bytes, sha256 {existing.digest}); "
        f"the new artifact differs ({size} bytes, sha256 {digest})"
    )
