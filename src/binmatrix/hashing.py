"""Artifact digests and sidecar hash files."""

from __future__ import annotations

import hashlib
from pathlib import Path

_CHUNK_SIZE = 1024 * 1024


def file_digest(path: str | Path, algorithm: str = "sha256") -> str:
    """Return the hex digest of the full content of *path*, read in chunks."""
    hasher = hashlib.new(algorithm)
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def sidecar_path(artifact: str | Path, algorithm: str = "sha256") -> Path:
    artifact_path = Path(artifact)
    return artifact_path.with_name(f"{artifact_path.name}.{algorithm}")


def write_sidecar(
    artifact: str | Path,
    digest: str,
    name: str | None = None,
    *,
    algorithm: str = "sha256",
) -> Path:
    """Write ``"<digest>  <name>\\n"`` beside *artifact* and return its path."""
    path = sidecar_path(artifact, algorithm)
    path.write_text(f"{digest}  {name or Path(artifact).name}\n", encoding="utf-8")
    return path


def read_sidecar(path: str | Path) -> str:
    content = Path(path).read_text(encoding="utf-8").strip()
    return content.split()[0] if content else ""


def list_artifacts(output_dir: str | Path, algorithm: str = "sha256") -> list[Path]:
    """Return built artifacts in *output_dir*: no sidecars, manifests, or archives."""
    root = Path(output_dir)
    if not root.is_dir():
        return []
    skipped = (f".{algorithm}", ".json", ".cbor", ".zip")
    return [
        entry
        for entry in sorted(root.iterdir())
        if entry.is_file() and not entry.name.endswith(skipped)
    ]
