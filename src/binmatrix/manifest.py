"""Build-run manifest model, serializer, and reader."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import cbor2

from binmatrix.errors import ManifestError, ManifestNotFoundError
from binmatrix.models import BuildResult

MANIFEST_FILENAME = "manifest.json"
MANIFEST_CBOR_FILENAME = "manifest.cbor"


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    name: str
    platform: str
    node_version: str
    hash: str
    size: int


@dataclass(frozen=True, slots=True)
class Manifest:
    version: str
    build_time: str
    builds: tuple[ManifestEntry, ...] = field(default_factory=tuple)

    def to_json(self, path: str | Path | None = None) -> str:
        encoded = json.dumps(self._payload(), indent=2) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        encoded = cbor2.dumps(self._payload(), canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def entry(self, name: str) -> ManifestEntry | None:
        for build in self.builds:
            if build.name == name:
                return build
        return None

    def _payload(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "buildTime": self.build_time,
            "builds": [
                {
                    "name": build.name,
                    "platform": build.platform,
                    "nodeVersion": build.node_version,
                    "hash": build.hash,
                    "size": build.size,
                }
                for build in self.builds
            ],
        }


def build_manifest(
    results: Sequence[BuildResult],
    *,
    version: str,
    build_time: datetime | None = None,
) -> Manifest:
    """Record the successful, non-dry-run results in plan order."""
    timestamp = build_time or datetime.now(UTC)
    entries = [
        ManifestEntry(
            name=result.job.output_name,
            platform=result.job.platform,
            node_version=result.job.runtime,
            hash=result.digest,
            size=result.size,
        )
        for result in sorted(results, key=lambda item: item.job.index)
        if result.success
        and not result.dry_run
        and result.digest is not None
        and result.size is not None
    ]
    return Manifest(
        version=version,
        build_time=timestamp.isoformat().replace("+00:00", "Z"),
        builds=tuple(entries),
    )


def manifest_path(output_dir: str | Path) -> Path:
    return Path(output_dir) / MANIFEST_FILENAME


def write_manifest(
    manifest: Manifest,
    output_dir: str | Path,
    *,
    cbor: bool = False,
) -> Path:
    """Overwrite the manifest of *output_dir*; prior runs are not merged.

    With *cbor* a canonical CBOR copy is written beside the JSON manifest;
    otherwise a stale copy from an earlier run is removed.
    Returns the JSON manifest path.
    """
    path = manifest_path(output_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest.to_json(path)
    cbor_path = path.with_name(MANIFEST_CBOR_FILENAME)
    if cbor:
        manifest.to_cbor(cbor_path)
    else:
        cbor_path.unlink(missing_ok=True)
    return path


def parse_manifest(raw: str) -> Manifest:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ManifestError("Invalid manifest JSON.", hint=str(exc)) from exc

    if not isinstance(payload, dict):
        raise ManifestError("Invalid manifest payload type.")

    builds_raw = payload.get("builds")
    if not isinstance(builds_raw, list):
        raise ManifestError("Invalid manifest `builds` value.")
    return Manifest(
        version=_required_str(payload, "version"),
        build_time=_required_str(payload, "buildTime"),
        builds=tuple(_parse_entry(item) for item in builds_raw),
    )


def read_manifest(output_dir: str | Path) -> Manifest:
    path = manifest_path(output_dir)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestNotFoundError(
            "Manifest does not exist.",
            hint="Run a build first; a manifest is written after any successful job.",
            context={"path": str(path)},
        ) from exc
    return parse_manifest(raw)


def _parse_entry(item: Any) -> ManifestEntry:
    if not isinstance(item, dict):
        raise ManifestError("Invalid build entry in manifest.")
    size = item.get("size")
    if not isinstance(size, int) or isinstance(size, bool) or size < 0:
        raise ManifestError("Invalid manifest `size` value.")
    name = _required_str(item, "name")
    if name in (".", "..") or "/" in name or "\\" in name:
        raise ManifestError(
            f"Invalid manifest entry name `{name}`.",
            hint="Entry names must be bare file names inside the output directory.",
        )
    return ManifestEntry(
        name=name,
        platform=_required_str(item, "platform"),
        node_version=_required_str(item, "nodeVersion"),
        hash=_required_str(item, "hash"),
        size=size,
    )


def _required_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ManifestError(f"Invalid manifest `{key}` value.")
    return value
