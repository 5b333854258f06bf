"""Artifact integrity verification against sidecars, digests, or the manifest."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from binmatrix.errors import OutputNotFoundError
from binmatrix.hashing import file_digest, list_artifacts, read_sidecar, sidecar_path
from binmatrix.manifest import Manifest, read_manifest
from binmatrix.observability import StructuredLogger

VerificationReason = Literal["ok", "artifact_missing", "sidecar_missing", "hash_mismatch"]


@dataclass(frozen=True, slots=True)
class VerificationResult:
    name: str
    path: Path
    ok: bool
    reason: VerificationReason
    expected: str | None = None
    actual: str | None = None

    @property
    def error(self) -> str | None:
        if self.reason == "artifact_missing":
            return "Binary file not found"
        if self.reason == "sidecar_missing":
            return "Hash file not found"
        if self.reason == "hash_mismatch":
            return "Hash mismatch"
        return None


@dataclass(frozen=True, slots=True)
class VerificationReport:
    results: tuple[VerificationResult, ...] = ()
    manifest: Manifest | None = None

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.results)

    @property
    def failures(self) -> tuple[VerificationResult, ...]:
        return tuple(result for result in self.results if not result.ok)


def verify_digest(
    path: str | Path,
    expected: str,
    *,
    algorithm: str = "sha256",
) -> VerificationResult:
    """Verify one file against an explicitly supplied digest."""
    artifact = Path(path)
    expected_digest = expected.strip().lower()
    if not artifact.is_file():
        return VerificationResult(
            name=artifact.name,
            path=artifact,
            ok=False,
            reason="artifact_missing",
            expected=expected_digest,
        )
    actual = file_digest(artifact, algorithm)
    matched = actual == expected_digest
    return VerificationResult(
        name=artifact.name,
        path=artifact,
        ok=matched,
        reason="ok" if matched else "hash_mismatch",
        expected=expected_digest,
        actual=actual,
    )


def verify_sidecar(path: str | Path, *, algorithm: str = "sha256") -> VerificationResult:
    """Verify one file against the digest stored in its sidecar."""
    artifact = Path(path)
    if not artifact.is_file():
        return VerificationResult(
            name=artifact.name, path=artifact, ok=False, reason="artifact_missing"
        )
    hash_file = sidecar_path(artifact, algorithm)
    if not hash_file.is_file():
        return VerificationResult(
            name=artifact.name,
            path=artifact,
            ok=False,
            reason="sidecar_missing",
            actual=file_digest(artifact, algorithm),
        )
    return verify_digest(artifact, read_sidecar(hash_file), algorithm=algorithm)


def verify_directory(
    output_dir: str | Path,
    *,
    algorithm: str = "sha256",
    logger: StructuredLogger | None = None,
) -> VerificationReport:
    """Verify every artifact in *output_dir* against its sidecar.

    Raises :class:`~binmatrix.errors.OutputNotFoundError` when *output_dir*
    does not exist. An existing directory without artifacts verifies as ok.
    """
    root = Path(output_dir)
    if not root.is_dir():
        raise OutputNotFoundError(
            "Output directory not found.",
            hint="Run a build before verifying.",
            context={"path": str(root)},
        )
    results = tuple(
        verify_sidecar(artifact, algorithm=algorithm)
        for artifact in list_artifacts(root, algorithm)
    )
    _log_results(results, logger, operation="verify_directory")
    return VerificationReport(results=results)


def verify_manifest(
    output_dir: str | Path,
    *,
    algorithm: str = "sha256",
    logger: StructuredLogger | None = None,
) -> VerificationReport:
    """Verify every manifest entry against the file of the same name.

    Raises :class:`~binmatrix.errors.ManifestNotFoundError` when the output
    directory has no manifest.
    """
    root = Path(output_dir)
    manifest = read_manifest(root)
    results = tuple(
        verify_digest(root / build.name, build.hash, algorithm=algorithm)
        for build in manifest.builds
    )
    _log_results(results, logger, operation="verify_manifest")
    return VerificationReport(results=results, manifest=manifest)


def _log_results(
    results: Iterable[VerificationResult],
    logger: StructuredLogger | None,
    *,
    operation: str,
) -> None:
    if logger is None:
        return
    for result in results:
        logger.log(
            operation=operation,
            phase="verify",
            job=result.name,
            message="Verified artifact." if result.ok else result.error or "Verification failed.",
            level="info" if result.ok else "error",
            extra={"reason": result.reason, "expected": result.expected, "actual": result.actual},
        )
