"""Registry Aggregator — recompute the global registry from runtime manifests.

``aggregate()`` is a pure function of the manifests and the language
metadata table.  ``RegistryAggregator.run()`` scans ``runtimes/*/manifest.json``,
aggregates, and overwrites the registry file in full.

Unlike every other pipeline step, a malformed manifest is not fatal here:
it is logged, reported in ``AggregationResult.skipped``, and its language is
left out of the registry.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from wasmforge.core.errors import (
    ManifestUnreadableError,
    RegistryWriteFailureError,
    RuntimesRootUnreadableError,
)
from wasmforge.core.metadata import MANIFEST_FILENAME, load_manifest
from wasmforge.core.storage import atomic_write_text
from wasmforge.models.manifest import RuntimeManifest, utc_now
from wasmforge.models.registry import (
    AggregationResult,
    GlobalRegistry,
    LanguageEntry,
    LanguageMetadata,
    SkippedManifest,
)

logger = logging.getLogger(__name__)

_FALLBACK_METADATA = LanguageMetadata()


class ScanResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    manifests: list[RuntimeManifest] = []
    skipped: list[SkippedManifest] = []


def aggregate(
    manifests: Iterable[RuntimeManifest],
    language_metadata: Mapping[str, LanguageMetadata],
    *,
    tool_version: str,
    build_date: datetime | None = None,
) -> GlobalRegistry:
    """Project runtime manifests into a ``GlobalRegistry``.

    Languages are keyed by each manifest's ``language`` and emitted sorted;
    version lists are sorted.  Unknown languages get ``"unknown"`` source
    and license.
    """
    entries: dict[str, LanguageEntry] = {}
    for manifest in manifests:
        meta = language_metadata.get(manifest.language, _FALLBACK_METADATA)
        entries[manifest.language] = LanguageEntry(
            latest=manifest.latest,
            versions=manifest.sorted_versions(),
            source=meta.source,
            license=meta.license,
        )
    return GlobalRegistry(
        version=tool_version,
        build_date=build_date or utc_now(),
        languages={lang: entries[lang] for lang in sorted(entries)},
    )


def scan_manifests(runtimes_root: Path) -> ScanResult:
    """Load every ``<runtimes_root>/*/manifest.json``, skipping bad ones."""
    runtimes_root = Path(runtimes_root)
    if not runtimes_root.exists():
        logger.warning("Runtimes directory %s does not exist; nothing to aggregate", runtimes_root)
        return ScanResult()
    try:
        candidates = sorted(
            child / MANIFEST_FILENAME
            for child in runtimes_root.iterdir()
            if child.is_dir()
        )
    except OSError as exc:
        raise RuntimesRootUnreadableError(
            f"Cannot read runtimes directory {runtimes_root}: {exc}"
        ) from exc

    manifests: list[RuntimeManifest] = []
    skipped: list[SkippedManifest] = []
    for path in candidates:
        if not path.is_file():
            continue
        try:
            manifests.append(load_manifest(path))
        except ManifestUnreadableError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            skipped.append(SkippedManifest(path=path, reason=str(exc)))
    return ScanResult(manifests=manifests, skipped=skipped)


class RegistryAggregator:
    """Scans, aggregates and writes the global registry file.

    Parameters
    ----------
    runtimes_root:
        Directory holding one sub-directory per language.
    output_path:
        Registry file to overwrite.
    language_metadata:
        Language -> homepage/license table.
    tool_version:
        Recorded as the registry's ``version``.
    """

    def __init__(
        self,
        runtimes_root: Path,
        output_path: Path,
        language_metadata: Mapping[str, LanguageMetadata],
        *,
        tool_version: str,
    ) -> None:
        self.runtimes_root = Path(runtimes_root)
        self.output_path = Path(output_path)
        self.language_metadata = dict(language_metadata)
        self.tool_version = tool_version

    def run(self) -> AggregationResult:
        scan = scan_manifests(self.runtimes_root)
        registry = aggregate(
            scan.manifests,
            self.language_metadata,
            tool_version=self.tool_version,
        )
        try:
            atomic_write_text(self.output_path, registry.to_json())
        except OSError as exc:
            raise RegistryWriteFailureError(
                f"Cannot write {self.output_path}: {exc}"
            ) from exc

        logger.info(
            "Global manifest generated: %s (%d language(s), %d skipped)",
            self.output_path, len(registry.languages), len(scan.skipped),
        )
        return AggregationResult(
            registry=registry,
            output_path=self.output_path,
            skipped=scan.skipped,
        )
