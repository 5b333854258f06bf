"""Per-artifact release archives.

Each artifact gets its own zip beside it, holding the executable under its
bare name, its hash sidecar when one exists, and the project's README.md and
LICENSE when present.
"""

from __future__ import annotations

import os
import zipfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from binmatrix.errors import PackagingError
from binmatrix.hashing import list_artifacts, sidecar_path
from binmatrix.observability import StructuredLogger

AUXILIARY_FILES = ("README.md", "LICENSE")
DEFAULT_EXTENSIONS = (".exe",)


@dataclass(frozen=True, slots=True)
class PackageResult:
    artifact: Path
    ok: bool
    archive: Path | None = None
    size: int | None = None
    members: tuple[str, ...] = ()
    error: str | None = None


@dataclass(frozen=True, slots=True)
class PackagingReport:
    results: tuple[PackageResult, ...] = ()

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.results)

    @property
    def failures(self) -> tuple[PackageResult, ...]:
        return tuple(result for result in self.results if not result.ok)


def archive_name(artifact_name: str, extensions: Sequence[str] = DEFAULT_EXTENSIONS) -> str:
    """Strip a trailing executable extension and append ``.zip``."""
    for extension in sorted(extensions, key=len, reverse=True):
        if extension and artifact_name.endswith(extension):
            artifact_name = artifact_name[: -len(extension)]
            break
    return f"{artifact_name.rstrip('.')}.zip"


@dataclass(slots=True)
class Packager:
    project_root: Path = field(default_factory=Path.cwd)
    hash_algorithm: str = "sha256"
    compression_level: int = 9
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def package_artifact(self, path: str | Path) -> PackageResult:
        """Archive one artifact; failures are returned, not raised."""
        artifact = Path(path)
        try:
            archive, members = self._write_archive(artifact)
        except (PackagingError, OSError, zipfile.BadZipFile) as exc:
            message = exc.message if isinstance(exc, PackagingError) else str(exc)
            self.logger.log(
                operation="package_artifact_failed",
                phase="package",
                job=artifact.name,
                message=str(message),
                level="error",
            )
            return PackageResult(artifact=artifact, ok=False, error=str(message))

        size = archive.stat().st_size
        self.logger.log(
            operation="package_artifact",
            phase="package",
            job=artifact.name,
            message=f"Created {archive.name}.",
            extra={"size": size, "members": list(members)},
        )
        return PackageResult(
            artifact=artifact,
            ok=True,
            archive=archive,
            size=size,
            members=members,
        )

    def package_directory(self, output_dir: str | Path) -> PackagingReport:
        """Archive every artifact in *output_dir*, continuing past failures."""
        root = Path(output_dir)
        if not root.is_dir():
            raise PackagingError(
                "Output directory not found.",
                hint="Run a build before packaging.",
                context={"path": str(root)},
            )
        results = tuple(
            self.package_artifact(artifact)
            for artifact in list_artifacts(root, self.hash_algorithm)
        )
        return PackagingReport(results=results)

    def _write_archive(self, artifact: Path) -> tuple[Path, tuple[str, ...]]:
        if not artifact.is_file():
            raise PackagingError(
                "Binary not found.",
                context={"artifact": artifact.name, "path": str(artifact)},
            )

        members: list[tuple[Path, str]] = [(artifact, artifact.name)]
        hash_file = sidecar_path(artifact, self.hash_algorithm)
        if hash_file.is_file():
            members.append((hash_file, hash_file.name))
        for name in AUXILIARY_FILES:
            auxiliary = self.project_root / name
            if auxiliary.is_file():
                members.append((auxiliary, name))

        archive = artifact.with_name(archive_name(artifact.name, self.extensions))
        temp_path = archive.with_name(f"{archive.name}.tmp")
        try:
            with zipfile.ZipFile(
                temp_path,
                "w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.compression_level,
            ) as zf:
                for source, arcname in members:
                    zf.write(source, arcname=arcname)
            os.replace(temp_path, archive)
        finally:
            temp_path.unlink(missing_ok=True)
        return archive, tuple(arcname for _, arcname in members)
