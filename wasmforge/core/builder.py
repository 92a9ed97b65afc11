"""Artifact Builder — one toolchain invocation -> one WebAssembly module.

Lifecycle of ``build()``::

    validate source -> resolve compiler -> compile -> [optimize] -> publish

The output path is deterministic: ``build/<language>/<language>-<version>.wasm``
(or the requested output name).  The build directory is scratch space; the
published copy under ``runtimes/<language>/`` is what gets recorded.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Mapping
from pathlib import Path

from wasmforge.core.errors import (
    BuildFailureError,
    MissingSourceError,
    ToolchainUnavailableError,
)
from wasmforge.core.hasher import sha256_file
from wasmforge.core.toolchains import (
    Compiler,
    Optimizer,
    WasmOptOptimizer,
    default_compilers,
)
from wasmforge.models.config import LanguageSpec, PipelineConfig, SourceKind
from wasmforge.models.reports import BuildRequest, BuildResult

logger = logging.getLogger(__name__)


class ArtifactBuilder:
    """Builds, optimizes and publishes artifacts for configured languages.

    Parameters
    ----------
    config:
        Pipeline configuration (directories and language specs).
    compilers:
        Compiler table keyed by ``LanguageSpec.compiler``.  Defaults to the
        subprocess-backed TinyGo and Cargo compilers.
    optimizer:
        Size optimizer.  Defaults to ``wasm-opt``.
    """

    def __init__(
        self,
        config: PipelineConfig,
        compilers: Mapping[str, Compiler] | None = None,
        optimizer: Optimizer | None = None,
    ) -> None:
        self._config = config
        self._compilers = dict(compilers) if compilers is not None else default_compilers()
        self._optimizer = optimizer if optimizer is not None else WasmOptOptimizer()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def spec_for(self, language: str) -> LanguageSpec:
        spec = self._config.language_spec(language)
        if spec is None:
            raise ToolchainUnavailableError(
                f"No toolchain configured for language {language!r}"
            )
        return spec

    def compiler_for(self, spec: LanguageSpec) -> Compiler:
        compiler = self._compilers.get(spec.compiler)
        if compiler is None:
            raise ToolchainUnavailableError(
                f"Unknown compiler {spec.compiler!r} for {spec.language}"
            )
        if not compiler.is_available():
            raise ToolchainUnavailableError(
                f"{compiler.name} not found. Install it or use the container build environment."
            )
        return compiler

    def output_path(
        self, spec: LanguageSpec, version: str, output_name: str | None = None
    ) -> Path:
        return self._config.language_build_dir(spec.language) / (
            output_name or spec.output_name(version)
        )

    @staticmethod
    def validate_source(spec: LanguageSpec, source: Path) -> None:
        """Raise ``MissingSourceError`` unless *source* has the expected shape."""
        if spec.source_kind == SourceKind.FILE:
            if not source.is_file():
                raise MissingSourceError(f"Source file not found: {source}")
            return
        if not source.is_dir():
            raise MissingSourceError(f"Project directory not found: {source}")
        if spec.descriptor and not (source / spec.descriptor).is_file():
            raise MissingSourceError(f"{spec.descriptor} not found in: {source}")

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def compile(self, request: BuildRequest) -> BuildResult:
        """Run the toolchain and measure the raw artifact."""
        spec = self.spec_for(request.language)
        source = Path(request.source)
        self.validate_source(spec, source)
        compiler = self.compiler_for(spec)

        version = request.version or spec.default_version
        target = request.target or spec.default_target
        output = self.output_path(spec, version, request.output_name)
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            # A stale file must not pass for this run's output.
            output.unlink(missing_ok=True)
        except OSError as exc:
            raise BuildFailureError(
                f"Cannot prepare build output {output}: {exc}"
            ) from exc

        logger.info(
            "Building %s %s: source=%s target=%s output=%s",
            spec.language, version, source, target, output,
        )
        compiler.compile(source.resolve(), output.resolve(), target)

        if not output.is_file():
            raise BuildFailureError(
                f"{compiler.name} reported success but produced no file at {output}"
            )
        return self._measure(spec.language, version, output)

    def optimize(self, result: BuildResult) -> BuildResult:
        """Run the optimizer in place; tolerated when the optimizer is absent."""
        if not self._optimizer.is_available():
            logger.warning(
                "Optimizer not found; keeping %s unoptimized", result.artifact_path
            )
            return result
        logger.info("Optimizing %s", result.artifact_path)
        self._optimizer.optimize(result.artifact_path)
        optimized = self._measure(
            result.language, result.version, result.artifact_path, step="optimize"
        )
        logger.info(
            "Optimized %s: %d -> %d bytes",
            result.artifact_path.name, result.size, optimized.size,
        )
        return optimized.model_copy(update={"optimized": True})

    def publish(self, result: BuildResult) -> BuildResult:
        """Copy the artifact into ``runtimes/<language>/``."""
        runtime_dir = self._config.runtime_dir(result.language)
        destination = runtime_dir / result.artifact_path.name
        try:
            runtime_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(result.artifact_path, destination)
        except OSError as exc:
            raise BuildFailureError(
                f"Cannot publish {result.artifact_path} to {runtime_dir}: {exc}",
                step="publish",
            ) from exc
        logger.info("Published %s", destination)
        return result.model_copy(update={"published_path": destination})

    def build(self, request: BuildRequest, *, publish: bool = True) -> BuildResult:
        """Compile, optionally optimize, and optionally publish one artifact."""
        result = self.compile(request)
        if request.optimize:
            result = self.optimize(result)
        if publish:
            result = self.publish(result)
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _measure(
        language: str, version: str, artifact: Path, step: str = "build"
    ) -> BuildResult:
        try:
            size = artifact.stat().st_size
            digest = sha256_file(artifact)
        except OSError as exc:
            raise BuildFailureError(f"Cannot read {artifact}: {exc}", step=step) from exc
        return BuildResult(
            language=language,
            version=version,
            artifact_path=artifact,
            size=size,
            digest=digest,
        )
