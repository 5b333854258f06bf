"""In-process packager backend for testing and development.

Produces deterministic placeholder executables without invoking ``pkg`` or
Node.js, so the whole pipeline can be exercised on machines without the
toolchain installed.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path

from binmatrix.backends.base import collect_artifact
from binmatrix.models import ArtifactMeta


@dataclass(slots=True)
class InProcessBackend:
    """Backend that writes deterministic placeholder artifacts in-process."""

    name: str = "inprocess"

    def prepare(self) -> None:
        pass

    def package(self, target: str, output_path: Path) -> ArtifactMeta:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        content = (
            f"binmatrix-artifact: target={target} name={output_path.name}\n"
            f"seed={hashlib.sha256(f'{target}:{output_path.name}'.encode()).hexdigest()}\n"
        )
        output_path.write_text(content, encoding="utf-8")
        return collect_artifact(output_path, backend=self.name, target=target)
