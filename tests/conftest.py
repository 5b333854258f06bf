"""Shared test fixtures."""

from __future__ import annotations

import copy
import json
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from binmatrix.config import BuildConfig, parse_config
from binmatrix.errors import BackendExecutionError
from binmatrix.models import ArtifactMeta

BASE_CONFIG: dict[str, Any] = {
    "version": "4.15.3",
    "platforms": {
        "linux-x64": {
            "enabled": True,
            "pkgTarget": "linux-x64",
            "artifactName": "linux-x64",
            "extension": "",
        },
        "win-x64": {
            "enabled": True,
            "pkgTarget": "win-x64",
            "artifactName": "win-x64",
            "extension": ".exe",
        },
        "macos-arm64": {
            "enabled": False,
            "pkgTarget": "macos-arm64",
            "artifactName": "macos-arm64",
            "extension": "",
        },
    },
    "nodeVersions": {
        "20": {"enabled": True, "supported": True, "pkgTarget": "node20"},
        "18": {"enabled": True, "supported": True, "pkgTarget": "node18"},
        "14": {"enabled": True, "supported": False, "pkgTarget": "node14"},
    },
    "output": {
        "directory": "dist",
        "binaryPrefix": "mjml",
        "hashAlgorithm": "sha256",
        "compressionLevel": 9,
    },
    "build": {
        "cleanBeforeBuild": False,
        "parallel": False,
        "maxConcurrency": 2,
    },
}

ConfigFactory = Callable[..., BuildConfig]


@dataclass
class RecordingBackend:
    """Fake packager that records calls and tracks how many run at once."""

    name: str = "recording"
    fail_targets: set[str] = field(default_factory=set)
    skip_output_targets: set[str] = field(default_factory=set)
    errors: dict[str, Exception] = field(default_factory=dict)
    delay: float = 0.0
    calls: list[tuple[str, Path]] = field(default_factory=list)
    active: int = 0
    max_active: int = 0
    prepared: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def prepare(self) -> None:
        self.prepared = True

    def package(self, target: str, output_path: Path) -> ArtifactMeta:
        with self._lock:
            self.calls.append((target, output_path))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if target in self.fail_targets:
                raise BackendExecutionError(f"pkg failed for {target}")
            if target in self.errors:
                raise self.errors[target]
            if target not in self.skip_output_targets:
                output_path.write_bytes(f"binary:{target}\n".encode())
        finally:
            with self._lock:
                self.active -= 1
        if not output_path.exists():
            raise BackendExecutionError(f"Binary not created: {output_path}")
        return ArtifactMeta(path=output_path, size=output_path.stat().st_size)


@pytest.fixture
def config_payload() -> dict[str, Any]:
    return copy.deepcopy(BASE_CONFIG)


@pytest.fixture
def make_config(config_payload: dict[str, Any]) -> ConfigFactory:
    """Build a config from the base payload.

    ``output`` and ``build`` overrides are merged; any other section is replaced.
    """

    def factory(**sections: dict[str, Any]) -> BuildConfig:
        payload = copy.deepcopy(config_payload)
        for name, values in sections.items():
            key = "nodeVersions" if name == "node_versions" else name
            if key in ("output", "build"):
                payload[key].update(values)
            else:
                payload[key] = values
        return parse_config(json.dumps(payload))

    return factory


@pytest.fixture
def recording_backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def project_root(tmp_path: Path, config_payload: dict[str, Any]) -> Path:
    """A project root holding config/build-config.json, README.md and LICENSE."""
    root = tmp_path / "project"
    (root / "config").mkdir(parents=True)
    (root / "config" / "build-config.json").write_text(
        json.dumps(config_payload, indent=2),
        encoding="utf-8",
    )
    (root / "README.md").write_text("# mjml binaries\n", encoding="utf-8")
    (root / "LICENSE").write_text("MIT\n", encoding="utf-8")
    return root
