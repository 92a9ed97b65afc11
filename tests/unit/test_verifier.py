"""Unit tests for the BinaryVerifier."""

from __future__ import annotations

from pathlib import Path

import pytest

from wasmforge.core.errors import ExecutionHangError, IntegrityMismatchError
from wasmforge.core.hasher import sha256_file
from wasmforge.core.verifier import BinaryVerifier
from wasmforge.models.reports import CheckStatus

CHECK_ORDER = ["existence", "magic", "size", "digest", "structural", "execution"]


class TestVerifierHappyPath:
    def test_valid_module_passes(self, verifier: BinaryVerifier, wasm_file: Path):
        report = verifier.verify(wasm_file)
        assert report.passed
        assert [c.name for c in report.checks] == CHECK_ORDER
        assert report.check("magic").status == CheckStatus.PASSED
        assert report.check("structural").status == CheckStatus.PASSED
        assert report.check("execution").status == CheckStatus.SKIPPED
        assert report.size == wasm_file.stat().st_size

    def test_digest_baseline_without_expectation(self, verifier: BinaryVerifier, wasm_file: Path):
        report = verifier.verify(wasm_file)
        digest = report.check("digest")
        assert digest.status == CheckStatus.INFO
        assert report.digest == sha256_file(wasm_file)

    def test_expected_digest_any_case(self, verifier: BinaryVerifier, wasm_file: Path):
        report = verifier.verify(wasm_file, sha256_file(wasm_file).upper())
        assert report.passed
        assert report.check("digest").status == CheckStatus.PASSED


class TestVerifierFailures:
    def test_missing_file_fails_every_dependent_check(self, verifier: BinaryVerifier, tmp_path: Path):
        report = verifier.verify(tmp_path / "absent.wasm")
        assert not report.passed
        assert report.check("existence").error_code == "MissingArtifact"
        assert report.check("magic").error_code == "InvalidFormat"
        assert report.check("structural").status == CheckStatus.SKIPPED
        # all checks still reported
        assert len(report.checks) == len(CHECK_ORDER)

    def test_zeroed_magic_is_invalid_format(self, verifier: BinaryVerifier, tmp_path: Path):
        path = tmp_path / "bad.wasm"
        path.write_bytes(b"\x00\x00\x00\x00\x01\x00\x00\x00")
        report = verifier.verify(path)
        magic = report.check("magic")
        assert magic.status == CheckStatus.FAILED
        assert magic.error_code == "InvalidFormat"
        assert "00000000" in magic.detail
        assert report.failed_count >= 1

    def test_empty_file_is_invalid_format(self, verifier: BinaryVerifier, tmp_path: Path):
        path = tmp_path / "empty.wasm"
        path.write_bytes(b"")
        report = verifier.verify(path)
        assert report.check("magic").error_code == "InvalidFormat"
        assert report.size == 0

    def test_digest_mismatch(self, verifier: BinaryVerifier, wasm_file: Path):
        report = verifier.verify(wasm_file, "0" * 64)
        digest = report.check("digest")
        assert digest.status == CheckStatus.FAILED
        assert digest.error_code == "IntegrityMismatch"
        with pytest.raises(IntegrityMismatchError):
            report.raise_for_failure()

    def test_structural_failure(self, verifier: BinaryVerifier, engine, wasm_file: Path):
        engine.valid = False
        report = verifier.verify(wasm_file)
        structural = report.check("structural")
        assert structural.error_code == "StructuralInvalid"
        assert "failed to parse" in structural.detail

    def test_hang_is_reported(self, verifier: BinaryVerifier, engine, wasm_file: Path):
        engine.hang = True
        report = verifier.verify(wasm_file, execute=True, timeout=0.5)
        assert report.check("execution").error_code == "ExecutionHang"
        with pytest.raises(ExecutionHangError):
            report.raise_for_failure()


class TestVerifierEngine:
    def test_engine_unavailable_skips(self, verifier: BinaryVerifier, engine, wasm_file: Path):
        engine.available = False
        report = verifier.verify(wasm_file, execute=True)
        assert report.passed
        assert report.check("structural").status == CheckStatus.SKIPPED
        assert report.check("execution").status == CheckStatus.SKIPPED

    def test_structural_disabled(self, verifier: BinaryVerifier, engine, wasm_file: Path):
        engine.valid = False
        report = verifier.verify(wasm_file, structural=False)
        assert report.passed
        assert report.check("structural").detail == "disabled"

    def test_nonzero_exit_is_not_a_failure(self, verifier: BinaryVerifier, engine, wasm_file: Path):
        engine.exit_code = 3
        report = verifier.verify(wasm_file, execute=True, run_args=["--help"], timeout=2.0)
        assert report.passed
        assert engine.executed == [(wasm_file, ["--help"], 2.0)]

    def test_default_engine_is_shared(self):
        verifier = BinaryVerifier()
        assert verifier._validator is verifier._executor
