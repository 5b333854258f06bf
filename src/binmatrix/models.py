"""Core typed dataclasses for planned jobs and their build outcomes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class BuildJob:
    index: int
    platform: str
    runtime: str
    target: str
    output_name: str

    @property
    def label(self) -> str:
        return f"{self.platform}/node{self.runtime}"


@dataclass(frozen=True, slots=True)
class ArtifactMeta:
    path: Path
    size: int


@dataclass(frozen=True, slots=True)
class BuildResult:
    job: BuildJob
    success: bool
    output_path: Path | None = None
    size: int | None = None
    digest: str | None = None
    error: str | None = None
    dry_run: bool = False
    duration: float = 0.0

    @classmethod
    def failed(cls, job: BuildJob, error: str, *, duration: float = 0.0) -> BuildResult:
        return cls(job=job, success=False, error=error, duration=duration)


@dataclass(frozen=True, slots=True)
class RunSummary:
    total: int
    successful: int
    failed: int
    duration: float

    @property
    def ok(self) -> bool:
        return self.failed == 0

    @classmethod
    def from_results(cls, results: Sequence[BuildResult], *, duration: float) -> RunSummary:
        successful = sum(1 for result in results if result.success)
        return cls(
            total=len(results),
            successful=successful,
            failed=len(results) - successful,
            duration=duration,
        )
