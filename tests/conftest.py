"""Shared test fixtures for Wasmforge.

External tools are replaced by in-process fakes so the pipeline can be
exercised without tinygo, cargo, wasm-opt or wasmtime installed.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from wasmforge.core.builder import ArtifactBuilder
from wasmforge.core.errors import BuildFailureError, OptimizeFailureError
from wasmforge.core.metadata import MetadataGenerator
from wasmforge.core.orchestrator import Orchestrator
from wasmforge.core.verifier import BinaryVerifier
from wasmforge.models.config import PipelineConfig
from wasmforge.models.reports import ExecutionResult

# Magic number + binary format version 1.
WASM_HEADER = b"\x00asm\x01\x00\x00\x00"


# ---------------------------------------------------------------------------
# Fake tools
# ---------------------------------------------------------------------------


class FakeCompiler:
    """Writes a minimal module to *output*; configurable to fail."""

    def __init__(self, name: str, payload: bytes = b"fake-module") -> None:
        self.name = name
        self.payload = payload
        self.available = True
        self.fail = False
        self.produce = True
        self.calls: list[tuple[Path, Path, str]] = []

    def is_available(self) -> bool:
        return self.available

    def compile(self, source: Path, output: Path, target: str) -> None:
        self.calls.append((source, output, target))
        if self.fail:
            raise BuildFailureError(f"{self.name} exited 1: syntax error")
        if self.produce:
            output.write_bytes(WASM_HEADER + self.payload)


class FakeOptimizer:
    """Shrinks the module to its header plus a marker."""

    def __init__(self) -> None:
        self.available = True
        self.fail = False
        self.calls: list[Path] = []

    def is_available(self) -> bool:
        return self.available

    def optimize(self, artifact: Path) -> None:
        self.calls.append(artifact)
        if self.fail:
            raise OptimizeFailureError("wasm-opt exited 1: parse error")
        artifact.write_bytes(WASM_HEADER + b"opt")


class FakeEngine:
    """Validator and executor in one, like wasmtime."""

    def __init__(self) -> None:
        self.available = True
        self.valid = True
        self.hang = False
        self.exit_code = 0
        self.executed: list[tuple[Path, list[str], float]] = []

    def is_available(self) -> bool:
        return self.available

    def validate(self, artifact: Path) -> ExecutionResult:
        if self.valid:
            return ExecutionResult(exit_code=0)
        return ExecutionResult(exit_code=1, stderr="error: failed to parse module")

    def execute(
        self, artifact: Path, args: Sequence[str], timeout: float
    ) -> ExecutionResult:
        self.executed.append((artifact, list(args), timeout))
        if self.hang:
            return ExecutionResult(timed_out=True, duration_seconds=timeout)
        return ExecutionResult(exit_code=self.exit_code, stdout="hello\n")


# ---------------------------------------------------------------------------
# Project layout
# ---------------------------------------------------------------------------


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project with a Go source and no Rust project."""
    root = tmp_path / "project"
    go_dir = root / "runtimes" / "go"
    go_dir.mkdir(parents=True)
    (go_dir / "main.go").write_text('package main\n\nfunc main() { println("hi") }\n')
    return root


@pytest.fixture
def rust_project(project: Path) -> Path:
    """Adds a Cargo project under runtimes/rust."""
    crate = project / "runtimes" / "rust"
    (crate / "src").mkdir(parents=True)
    (crate / "Cargo.toml").write_text('[package]\nname = "hello"\nversion = "0.1.0"\n')
    (crate / "src" / "main.rs").write_text('fn main() { println!("hi"); }\n')
    return project


@pytest.fixture
def pipeline_config(project: Path) -> PipelineConfig:
    """Default language table rooted at the temp project."""
    return PipelineConfig(project_root=project, tool_version="0.2.0")


@pytest.fixture
def wasm_file(tmp_path: Path) -> Path:
    """A small, well-formed-looking module on disk."""
    path = tmp_path / "artifacts" / "app.wasm"
    path.parent.mkdir(parents=True)
    path.write_bytes(WASM_HEADER + b"payload")
    return path


# ---------------------------------------------------------------------------
# Fakes and components wired to them
# ---------------------------------------------------------------------------


@pytest.fixture
def tinygo() -> FakeCompiler:
    return FakeCompiler("tinygo", payload=b"go-module")


@pytest.fixture
def cargo() -> FakeCompiler:
    return FakeCompiler("cargo", payload=b"rust-module")


@pytest.fixture
def optimizer() -> FakeOptimizer:
    return FakeOptimizer()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Deterministic clock advancing one minute per call."""
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    ticks = iter(range(10_000))
    return lambda: start + timedelta(minutes=next(ticks))


@pytest.fixture
def builder(
    pipeline_config: PipelineConfig,
    tinygo: FakeCompiler,
    cargo: FakeCompiler,
    optimizer: FakeOptimizer,
) -> ArtifactBuilder:
    return ArtifactBuilder(
        pipeline_config,
        compilers={"tinygo": tinygo, "cargo": cargo},
        optimizer=optimizer,
    )


@pytest.fixture
def verifier(engine: FakeEngine) -> BinaryVerifier:
    return BinaryVerifier(validator=engine, executor=engine)


@pytest.fixture
def metadata(clock: Callable[[], datetime]) -> MetadataGenerator:
    return MetadataGenerator(clock=clock)


@pytest.fixture
def make_orchestrator(
    pipeline_config: PipelineConfig,
    tinygo: FakeCompiler,
    cargo: FakeCompiler,
    optimizer: FakeOptimizer,
    verifier: BinaryVerifier,
    clock: Callable[[], datetime],
) -> Callable[..., Orchestrator]:
    """Factory fixture: an Orchestrator on fakes, with config overrides."""

    def _factory(**overrides) -> Orchestrator:
        config = pipeline_config.model_copy(update=overrides)
        return Orchestrator(
            config,
            builder=ArtifactBuilder(
                config,
                compilers={"tinygo": tinygo, "cargo": cargo},
                optimizer=optimizer,
            ),
            verifier=verifier,
            metadata=MetadataGenerator(
                allow_overwrite=config.allow_overwrite, clock=clock
            ),
            run_id="wf-test-run-001",
        )

    return _factory
