"""Pipeline orchestrator — build, record, verify and aggregate every language.

Run shape::

    for each configured language (in order):
        PENDING -> BUILDING -> [OPTIMIZING] -> VERIFYING -> RECORDED
                \\-> SKIPPED (source absent / disabled)
                any step error -> FAILED, run aborted
    verify every artifact recorded in this run
    aggregate the global registry once

Each step is wrapped into a ``StepResult``; the run loop inspects it and
stops at the first failure.  A failed run never reaches the aggregator.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from wasmforge.config import ProdConfig
from wasmforge.core.aggregator import RegistryAggregator
from wasmforge.core.builder import ArtifactBuilder
from wasmforge.core.errors import WasmForgeError
from wasmforge.core.metadata import MetadataGenerator
from wasmforge.core.state_machine import LanguageStateMachine
from wasmforge.core.verifier import BinaryVerifier
from wasmforge.models.config import LanguageSpec, PipelineConfig
from wasmforge.models.reports import BuildRequest, BuildResult, VerificationReport
from wasmforge.models.results import (
    LanguageOutcome,
    PipelineRunReport,
    RunStatus,
    StepResult,
)
from wasmforge.models.states import LanguageState

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs the full pipeline over the configured languages.

    Parameters
    ----------
    config:
        Pipeline configuration.  Built from environment settings if omitted.
    builder, verifier, metadata, aggregator:
        Component overrides (tests pass fakes-backed instances).
    run_id:
        Explicit run identifier.  Generated if None.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        builder: ArtifactBuilder | None = None,
        verifier: BinaryVerifier | None = None,
        metadata: MetadataGenerator | None = None,
        aggregator: RegistryAggregator | None = None,
        run_id: str | None = None,
    ) -> None:
        self.config = config or PipelineConfig.from_settings(ProdConfig())
        self.builder = builder or ArtifactBuilder(self.config)
        self.verifier = verifier or BinaryVerifier()
        self.metadata = metadata or MetadataGenerator(
            allow_overwrite=self.config.allow_overwrite
        )
        self.aggregator = aggregator or RegistryAggregator(
            self.config.runtimes_root,
            self.config.registry_file,
            self.config.language_metadata,
            tool_version=self.config.tool_version,
        )

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.run_id = run_id or f"wf-{ts}-{uuid.uuid4().hex[:3]}"
        self.state_machine = LanguageStateMachine(
            spec.language for spec in self.config.languages
        )

        self._outcomes: dict[str, LanguageOutcome] = {}
        self._verification: list[VerificationReport] = []

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> PipelineRunReport:
        """Execute the pipeline to completion or to the first failure."""
        logger.info(
            "Run %s: languages=%s",
            self.run_id, [s.language for s in self.config.languages],
        )

        recorded: list[BuildResult] = []
        for spec in self.config.languages:
            step = self._process_language(spec)
            if not step.ok:
                return self._report(RunStatus.FAILED, step)
            if step.value is not None:
                recorded.append(step.value)

        if self.config.verify:
            for build in recorded:
                step = self._attempt("verify", self._verify_recorded, build)
                if not step.ok:
                    return self._report(RunStatus.FAILED, step)
        else:
            logger.info("Verification disabled; skipping verify pass")

        step = self._attempt("aggregate", self.aggregator.run)
        if not step.ok:
            return self._report(RunStatus.FAILED, step)
        return self._report(RunStatus.COMPLETED, step)

    # ------------------------------------------------------------------
    # Per-language steps
    # ------------------------------------------------------------------

    def _process_language(self, spec: LanguageSpec) -> StepResult:
        """Take one language from PENDING to a terminal state.

        Returns a successful StepResult whose value is the published
        BuildResult (None when skipped), or the failing step.
        """
        language = spec.language
        source = self.config.source_path(spec)

        if not spec.enabled:
            return self._skip(spec, "disabled")
        if not source.exists():
            return self._skip(spec, f"{source} not found")

        self.state_machine.transition(language, LanguageState.BUILDING)
        request = BuildRequest(
            language=language,
            source=source,
            version=spec.default_version,
            target=spec.default_target,
            optimize=self.config.optimize,
        )
        step = self._attempt("build", self.builder.compile, request)
        if not step.ok:
            return self._fail(spec, step)
        build: BuildResult = step.value

        if self.config.optimize:
            self.state_machine.transition(language, LanguageState.OPTIMIZING)
            step = self._attempt("optimize", self.builder.optimize, build)
            if not step.ok:
                return self._fail(spec, step, build)
            build = step.value

        self.state_machine.transition(language, LanguageState.VERIFYING)
        step = self._attempt("verify", self._check_build, build)
        if not step.ok:
            return self._fail(spec, step, build)

        step = self._attempt(
            "metadata",
            self.metadata.check_publishable,
            language,
            build.version,
            self.config.runtime_dir(language) / build.artifact_path.name,
            size=build.size,
            digest=build.digest,
        )
        if not step.ok:
            return self._fail(spec, step, build)

        step = self._attempt("publish", self.builder.publish, build)
        if not step.ok:
            return self._fail(spec, step, build)
        build = step.value

        step = self._attempt(
            "metadata",
            self.metadata.generate,
            language,
            build.version,
            build.published_path,
            abi=spec.abi,
            features=spec.features,
            expected_size=build.size,
            expected_digest=build.digest,
        )
        if not step.ok:
            return self._fail(spec, step, build)

        self.state_machine.transition(
            language, LanguageState.RECORDED, f"{build.version} sha256={build.digest[:12]}"
        )
        self._outcomes[language] = LanguageOutcome(
            language=language,
            state=LanguageState.RECORDED,
            build=build,
            manifest=step.value,
        )
        return StepResult.success("record", build)

    def _check_build(self, build: BuildResult) -> VerificationReport:
        """Gate before publishing: the raw output must be a module with the measured digest."""
        report = self.verifier.verify(
            build.artifact_path, build.digest, structural=False
        )
        report.raise_for_failure()
        return report

    def _verify_recorded(self, build: BuildResult) -> VerificationReport:
        report = self.verifier.verify(
            build.published_path,
            build.digest,
            execute=self.config.smoke_test,
            timeout=self.config.smoke_timeout_seconds,
        )
        self._verification.append(report)
        report.raise_for_failure()
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _attempt(step: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> StepResult:
        """Call *fn*, turning a pipeline error into a failed StepResult."""
        try:
            return StepResult.success(step, fn(*args, **kwargs))
        except WasmForgeError as exc:
            logger.error("%s step failed: %s", step, exc.describe())
            return StepResult.failure(step, exc)

    def _skip(self, spec: LanguageSpec, reason: str) -> StepResult:
        logger.info("Skipping %s: %s", spec.language, reason)
        self.state_machine.transition(spec.language, LanguageState.SKIPPED, reason)
        self._outcomes[spec.language] = LanguageOutcome(
            language=spec.language, state=LanguageState.SKIPPED, reason=reason
        )
        return StepResult.success("skip")

    def _fail(
        self, spec: LanguageSpec, step: StepResult, build: BuildResult | None = None
    ) -> StepResult:
        assert step.error is not None
        self.state_machine.transition(
            spec.language, LanguageState.FAILED, step.error.describe()
        )
        self._outcomes[spec.language] = LanguageOutcome(
            language=spec.language,
            state=LanguageState.FAILED,
            build=build,
            reason=step.error.describe(),
        )
        return step

    def _report(self, status: RunStatus, last: StepResult) -> PipelineRunReport:
        error = last.error
        return PipelineRunReport(
            run_id=self.run_id,
            status=status,
            outcomes=dict(self._outcomes),
            transitions=self.state_machine.history,
            verification=list(self._verification),
            aggregation=last.value if status == RunStatus.COMPLETED else None,
            failed_step=last.step if error else "",
            error_code=error.code if error else "",
            error_message=str(error) if error else "",
        )

    def get_states(self) -> dict[str, LanguageState]:
        return self.state_machine.get_all_states()
