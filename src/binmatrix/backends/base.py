"""Protocol for compiler-packager backends."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from binmatrix.errors import BackendExecutionError
from binmatrix.models import ArtifactMeta


class PackagerBackend(Protocol):
    name: str

    def prepare(self) -> None:
        """Check that the backend can run before any job is scheduled."""

    def package(self, target: str, output_path: Path) -> ArtifactMeta:
        """Produce exactly one executable for *target* at *output_path*.

        Raises :class:`BackendExecutionError` carrying the tool diagnostic
        when the invocation fails.
        """


def collect_artifact(output_path: Path, *, backend: str, target: str) -> ArtifactMeta:
    """Validate that a backend left its output file in place."""
    if not output_path.is_file():
        raise BackendExecutionError(
            f"Binary not created: {output_path}",
            hint="The packager exited cleanly but produced no output file.",
            context={
                "backend": backend,
                "target": target,
                "artifact": output_path.name,
                "output": str(output_path),
            },
        )
    return ArtifactMeta(path=output_path, size=output_path.stat().st_size)
