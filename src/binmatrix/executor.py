"""Bounded-concurrency execution of planned build jobs.

Each job invokes the packager backend for its own output path, then hashes the
artifact and writes its sidecar. Jobs share no artifact state, so a failing job
is recorded as a failed :class:`BuildResult` and never stops its siblings.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from binmatrix.backends.base import PackagerBackend
from binmatrix.clean import clean_output_dir
from binmatrix.config import BuildConfig
from binmatrix.errors import BackendExecutionError
from binmatrix.hashing import file_digest, write_sidecar
from binmatrix.models import BuildJob, BuildResult
from binmatrix.observability import StructuredLogger

ResultCallback = Callable[[BuildResult], None]


@dataclass(slots=True)
class BuildExecutor:
    config: BuildConfig
    backend: PackagerBackend
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    dry_run: bool = False
    on_result: ResultCallback | None = None

    def run(
        self,
        jobs: Sequence[BuildJob],
        output_dir: str | Path,
        *,
        clean: bool | None = None,
    ) -> list[BuildResult]:
        """Run *jobs* and return one result per job, in plan order.

        When cleaning is requested (``clean`` or, if unset, the config's
        ``cleanBeforeBuild``) the output directory is emptied before the first
        job starts. Dry runs never touch the filesystem.
        """
        destination = Path(output_dir).resolve()
        should_clean = self.config.build.clean_before_build if clean is None else clean

        if not self.dry_run:
            if should_clean:
                clean_output_dir(destination, force=True, logger=self.logger)
            destination.mkdir(parents=True, exist_ok=True)

        if not jobs:
            return []

        settings = self.config.build
        if settings.parallel and len(jobs) > 1:
            results = self._run_parallel(jobs, destination, settings.max_concurrency)
        else:
            results = self._run_sequential(jobs, destination)
        return sorted(results, key=lambda result: result.job.index)

    def build_job(self, job: BuildJob, output_dir: Path) -> BuildResult:
        output_path = output_dir / job.output_name
        self.logger.log(
            operation="build_job_start",
            phase="build",
            job=job.label,
            message=f"Building {job.output_name}.",
            extra={"target": job.target, "output": str(output_path)},
        )

        if self.dry_run:
            self.logger.log(
                operation="build_job_dry_run",
                phase="build",
                job=job.label,
                message=f"Would build to {output_path}.",
            )
            return BuildResult(job=job, success=True, output_path=output_path, dry_run=True)

        started = time.monotonic()
        algorithm = self.config.output.hash_algorithm
        try:
            artifact = self.backend.package(job.target, output_path)
            digest = file_digest(artifact.path, algorithm)
            write_sidecar(artifact.path, digest, job.output_name, algorithm=algorithm)
        except Exception as exc:  # noqa: BLE001
            duration = time.monotonic() - started
            message = _failure_message(exc)
            self.logger.log(
                operation="build_job_failed",
                phase="build",
                job=job.label,
                message=message,
                level="error",
                extra={"target": job.target, "duration": round(duration, 3)},
            )
            return BuildResult.failed(job, message, duration=duration)

        duration = time.monotonic() - started
        self.logger.log(
            operation="build_job_complete",
            phase="build",
            job=job.label,
            message=f"Built {job.output_name}.",
            extra={"size": artifact.size, "digest": digest, "duration": round(duration, 3)},
        )
        return BuildResult(
            job=job,
            success=True,
            output_path=artifact.path,
            size=artifact.size,
            digest=digest,
            duration=duration,
        )

    def _run_sequential(self, jobs: Sequence[BuildJob], output_dir: Path) -> list[BuildResult]:
        results: list[BuildResult] = []
        for job in jobs:
            result = self.build_job(job, output_dir)
            results.append(result)
            self._notify(result)
        return results

    def _run_parallel(
        self,
        jobs: Sequence[BuildJob],
        output_dir: Path,
        max_concurrency: int,
    ) -> list[BuildResult]:
        workers = min(max_concurrency, len(jobs))
        self.logger.log(
            operation="build_pool_start",
            phase="build",
            job=None,
            message=f"Running {len(jobs)} jobs on {workers} workers.",
            extra={"workers": workers, "jobs": len(jobs)},
        )
        results: list[BuildResult] = []
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="binmatrix") as pool:
            futures = [pool.submit(self.build_job, job, output_dir) for job in jobs]
            for future in as_completed(futures):
                result = future.result()
                results.append(result)
                self._notify(result)
        return results

    def _notify(self, result: BuildResult) -> None:
        if self.on_result is not None:
            self.on_result(result)


def _failure_message(exc: Exception) -> str:
    if isinstance(exc, BackendExecutionError):
        return exc.message
    if isinstance(exc, OSError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"
