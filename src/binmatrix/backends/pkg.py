"""Executable packaging via the ``pkg`` command-line tool.

Runs ``npx @yao-pkg/pkg . --target <triple> --output <path>`` from the project
root. The tool bundles the Node.js runtime named by the target triple together
with the CLI entry point into one self-contained binary.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from binmatrix.backends.base import collect_artifact
from binmatrix.errors import BackendExecutionError
from binmatrix.models import ArtifactMeta

_STDERR_LIMIT = 2000


@dataclass(slots=True)
class PkgBackend:
    project_root: Path = field(default_factory=Path.cwd)
    name: str = "pkg"
    command: tuple[str, ...] = ("npx", "@yao-pkg/pkg")
    compress: str = "GZip"
    timeout: float | None = None
    extra_args: list[str] = field(default_factory=list)

    def prepare(self) -> None:
        if shutil.which(self.command[0]) is None:
            raise BackendExecutionError(
                f"Packager backend requires `{self.command[0]}` in PATH.",
                hint="Install Node.js and npm before building binaries.",
                context={"backend": self.name, "operation": "prepare"},
            )

    def build_command(self, target: str, output_path: Path) -> list[str]:
        return [
            *self.command,
            ".",
            "--target",
            target,
            "--output",
            str(output_path),
            "--compress",
            self.compress,
            *self.extra_args,
        ]

    def package(self, target: str, output_path: Path) -> ArtifactMeta:
        cmd = self.build_command(target, output_path)
        try:
            result = subprocess.run(
                cmd,
                cwd=str(self.project_root),
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise BackendExecutionError(
                f"Packager timed out after {self.timeout}s.",
                hint="Raise build.timeoutSeconds or investigate the hung build.",
                context={"backend": self.name, "target": target, "command": " ".join(cmd)},
            ) from exc
        except OSError as exc:
            raise BackendExecutionError(
                f"Packager could not be started: {exc}",
                context={"backend": self.name, "target": target, "command": " ".join(cmd)},
            ) from exc

        if result.returncode != 0:
            stderr = result.stderr.strip() if result.stderr else ""
            raise BackendExecutionError(
                stderr[:_STDERR_LIMIT] or f"Packager exited with status {result.returncode}.",
                context={
                    "backend": self.name,
                    "target": target,
                    "returncode": str(result.returncode),
                    "command": " ".join(cmd),
                },
            )

        return collect_artifact(output_path, backend=self.name, target=target)
