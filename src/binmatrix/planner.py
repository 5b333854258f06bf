"""Build matrix expansion."""

from __future__ import annotations

from collections.abc import Sequence

from binmatrix.config import BuildConfig, PlatformSpec
from binmatrix.models import BuildJob


def plan_jobs(
    config: BuildConfig,
    *,
    platform: str | None = None,
    runtime: str | None = None,
) -> tuple[BuildJob, ...]:
    """Expand enabled platforms x eligible runtimes into ordered build jobs.

    Platforms must be ``enabled``; runtimes must be both ``enabled`` and
    ``supported``. Optional filters narrow either axis to a single id. The
    product is platform-major and follows declaration order, so identical
    inputs always produce an identical plan. An empty tuple is returned when
    nothing is eligible.
    """
    platforms = [
        (name, spec)
        for name, spec in config.platforms.items()
        if spec.enabled and (platform is None or name == platform)
    ]
    runtimes = [
        (version, spec)
        for version, spec in config.runtimes.items()
        if spec.eligible and (runtime is None or version == runtime)
    ]

    jobs: list[BuildJob] = []
    for platform_name, platform_spec in platforms:
        for version, runtime_spec in runtimes:
            jobs.append(
                BuildJob(
                    index=len(jobs),
                    platform=platform_name,
                    runtime=version,
                    target=f"{runtime_spec.pkg_target}-{platform_spec.pkg_target}",
                    output_name=binary_name(config, platform_spec, version),
                ),
            )
    return tuple(jobs)


def binary_name(config: BuildConfig, platform: PlatformSpec, runtime: str) -> str:
    prefix = config.output.binary_prefix
    return f"{prefix}-{platform.artifact_name}-node{runtime}{platform.extension}"


def describe_plan(jobs: Sequence[BuildJob]) -> list[str]:
    return [f"{job.output_name} ({job.target})" for job in jobs]
