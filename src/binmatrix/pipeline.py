"""Plan, clean, build, and record one build run."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path

from binmatrix.backends.base import PackagerBackend
from binmatrix.config import BuildConfig
from binmatrix.executor import BuildExecutor, ResultCallback
from binmatrix.manifest import Manifest, build_manifest, write_manifest
from binmatrix.models import BuildJob, BuildResult, RunSummary
from binmatrix.observability import StructuredLogger
from binmatrix.planner import plan_jobs


@dataclass(frozen=True, slots=True)
class BuildRun:
    jobs: tuple[BuildJob, ...]
    results: tuple[BuildResult, ...]
    summary: RunSummary
    output_dir: Path
    manifest: Manifest | None = None
    manifest_path: Path | None = None


@dataclass(slots=True)
class BuildPipeline:
    """Runs the plan and build phases and writes the manifest of a run."""

    config: BuildConfig
    backend: PackagerBackend
    project_root: Path = field(default_factory=Path.cwd)
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    @property
    def output_dir(self) -> Path:
        return self.config.output_dir(self.project_root)

    def plan(
        self,
        *,
        platform: str | None = None,
        runtime: str | None = None,
    ) -> tuple[BuildJob, ...]:
        jobs = plan_jobs(self.config, platform=platform, runtime=runtime)
        self.logger.log(
            operation="plan",
            phase="plan",
            job=None,
            message=f"Planned {len(jobs)} job(s).",
            extra={
                "platform": platform,
                "runtime": runtime,
                "jobs": [job.output_name for job in jobs],
            },
        )
        return jobs

    def build(
        self,
        jobs: tuple[BuildJob, ...],
        *,
        dry_run: bool = False,
        clean: bool | None = None,
        on_result: ResultCallback | None = None,
        manifest_cbor: bool = False,
    ) -> BuildRun:
        """Execute *jobs* and overwrite the manifest when any job succeeded.

        Dry runs write nothing, manifest included.
        """
        if not dry_run:
            self.backend.prepare()
        executor = BuildExecutor(
            config=self.config,
            backend=self.backend,
            logger=self.logger,
            dry_run=dry_run,
            on_result=on_result,
        )
        started = time.monotonic()
        results = executor.run(jobs, self.output_dir, clean=clean)
        summary = RunSummary.from_results(results, duration=time.monotonic() - started)
        self.logger.log(
            operation="build_summary",
            phase="build",
            job=None,
            message="Build run finished.",
            level="info" if summary.ok else "error",
            extra={
                "total": summary.total,
                "successful": summary.successful,
                "failed": summary.failed,
            },
        )

        manifest: Manifest | None = None
        manifest_file: Path | None = None
        if not dry_run and summary.successful > 0:
            manifest = build_manifest(results, version=self.config.version)
            manifest_file = write_manifest(manifest, self.output_dir, cbor=manifest_cbor)
            self.logger.log(
                operation="manifest_write",
                phase="build",
                job=None,
                message="Manifest written.",
                extra={
                    "path": str(manifest_file),
                    "builds": len(manifest.builds),
                    "cbor": manifest_cbor,
                },
            )

        return BuildRun(
            jobs=jobs,
            results=tuple(results),
            summary=summary,
            output_dir=self.output_dir,
            manifest=manifest,
            manifest_path=manifest_file,
        )
