"""Build configuration model and JSON loader.

The configuration is parsed once per invocation into frozen dataclasses and
passed explicitly to every phase. Platform and runtime ordering follows the
order in which they are declared in the file.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from binmatrix import __version__
from binmatrix.errors import ConfigError

DEFAULT_CONFIG_PATH = Path("config") / "build-config.json"


@dataclass(frozen=True, slots=True)
class PlatformSpec:
    enabled: bool
    pkg_target: str
    artifact_name: str
    extension: str = ""


@dataclass(frozen=True, slots=True)
class RuntimeSpec:
    enabled: bool
    supported: bool
    pkg_target: str

    @property
    def eligible(self) -> bool:
        return self.enabled and self.supported


@dataclass(frozen=True, slots=True)
class OutputPolicy:
    directory: str = "dist"
    binary_prefix: str = "mjml"
    hash_algorithm: str = "sha256"
    compression_level: int = 9


@dataclass(frozen=True, slots=True)
class BuildSettings:
    clean_before_build: bool = False
    parallel: bool = False
    max_concurrency: int = 1
    timeout: float | None = None


@dataclass(frozen=True, slots=True)
class BuildConfig:
    platforms: dict[str, PlatformSpec]
    runtimes: dict[str, RuntimeSpec]
    output: OutputPolicy = field(default_factory=OutputPolicy)
    build: BuildSettings = field(default_factory=BuildSettings)
    version: str = __version__

    def output_dir(self, root: str | Path) -> Path:
        """Resolve the configured output directory against a project root."""
        return (Path(root) / self.output.directory).resolve()

    def executable_extensions(self) -> tuple[str, ...]:
        extensions = {spec.extension for spec in self.platforms.values() if spec.extension}
        extensions.add(".exe")
        return tuple(sorted(extensions))


def parse_config(raw: str, *, source: str = "<string>") -> BuildConfig:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(
            "Invalid build config JSON.",
            hint=str(exc),
            context={"path": source},
        ) from exc

    if not isinstance(payload, dict):
        raise ConfigError("Invalid build config payload type.", context={"path": source})

    platforms = {
        name: _parse_platform(name, item, source=source)
        for name, item in _required_dict(payload, "platforms", source=source).items()
    }
    runtimes = {
        name: _parse_runtime(name, item, source=source)
        for name, item in _required_dict(payload, "nodeVersions", source=source).items()
    }
    output = _parse_output(_required_dict(payload, "output", source=source), source=source)
    build = _parse_build(_optional_dict(payload, "build", source=source), source=source)

    version = payload.get("version", __version__)
    if not isinstance(version, str) or not version:
        raise ConfigError("Invalid build config `version` value.", context={"path": source})

    return BuildConfig(
        platforms=platforms,
        runtimes=runtimes,
        output=output,
        build=build,
        version=version,
    )


def load_config(path: str | Path) -> BuildConfig:
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(
            "Build config does not exist.",
            hint="Pass --config or create config/build-config.json.",
            context={"path": str(config_path)},
        ) from exc
    return parse_config(raw, source=str(config_path))


def _parse_platform(name: str, item: Any, *, source: str) -> PlatformSpec:
    if not isinstance(item, dict):
        raise ConfigError(
            "Invalid platform entry in build config.",
            context={"path": source, "key": f"platforms.{name}"},
        )
    key = f"platforms.{name}"
    return PlatformSpec(
        enabled=_required_bool(item, "enabled", key=key, source=source),
        pkg_target=_required_str(item, "pkgTarget", key=key, source=source),
        artifact_name=_required_str(item, "artifactName", key=key, source=source),
        extension=_optional_str(item, "extension", "", key=key, source=source),
    )


def _parse_runtime(name: str, item: Any, *, source: str) -> RuntimeSpec:
    if not isinstance(item, dict):
        raise ConfigError(
            "Invalid node version entry in build config.",
            context={"path": source, "key": f"nodeVersions.{name}"},
        )
    key = f"nodeVersions.{name}"
    return RuntimeSpec(
        enabled=_required_bool(item, "enabled", key=key, source=source),
        supported=_optional_bool(item, "supported", False, key=key, source=source),
        pkg_target=_required_str(item, "pkgTarget", key=key, source=source),
    )


def _parse_output(item: dict[str, Any], *, source: str) -> OutputPolicy:
    defaults = OutputPolicy()
    algorithm = _optional_str(
        item, "hashAlgorithm", defaults.hash_algorithm, key="output", source=source
    ).lower()
    if algorithm not in hashlib.algorithms_available:
        raise ConfigError(
            f"Unsupported hash algorithm {algorithm!r}.",
            hint="Use an algorithm supported by hashlib, e.g. sha256.",
            context={"path": source, "key": "output.hashAlgorithm"},
        )

    level = item.get("compressionLevel", defaults.compression_level)
    if not isinstance(level, int) or isinstance(level, bool) or not 0 <= level <= 9:
        raise ConfigError(
            f"Invalid compression level {level!r}; expected 0-9.",
            context={"path": source, "key": "output.compressionLevel"},
        )

    return OutputPolicy(
        directory=_optional_str(item, "directory", defaults.directory, key="output", source=source),
        binary_prefix=_optional_str(
            item, "binaryPrefix", defaults.binary_prefix, key="output", source=source
        ),
        hash_algorithm=algorithm,
        compression_level=level,
    )


def _parse_build(item: dict[str, Any], *, source: str) -> BuildSettings:
    max_concurrency = item.get("maxConcurrency", 1)
    if (
        not isinstance(max_concurrency, int)
        or isinstance(max_concurrency, bool)
        or max_concurrency < 1
    ):
        raise ConfigError(
            f"Invalid max concurrency {max_concurrency!r}; expected a positive integer.",
            context={"path": source, "key": "build.maxConcurrency"},
        )

    timeout = item.get("timeoutSeconds")
    if timeout is not None and (
        not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0
    ):
        raise ConfigError(
            f"Invalid build timeout {timeout!r}; expected a positive number of seconds.",
            context={"path": source, "key": "build.timeoutSeconds"},
        )

    return BuildSettings(
        clean_before_build=_optional_bool(
            item, "cleanBeforeBuild", False, key="build", source=source
        ),
        parallel=_optional_bool(item, "parallel", False, key="build", source=source),
        max_concurrency=max_concurrency,
        timeout=float(timeout) if timeout is not None else None,
    )


def _required_str(payload: dict[str, Any], name: str, *, key: str, source: str) -> str:
    value = payload.get(name)
    if not isinstance(value, str) or not value:
        raise ConfigError(
            f"Invalid build config `{name}` value.",
            context={"path": source, "key": f"{key}.{name}"},
        )
    return value


def _optional_str(
    payload: dict[str, Any], name: str, default: str, *, key: str, source: str
) -> str:
    if name not in payload:
        return default
    value = payload[name]
    if not isinstance(value, str) or (not value and default):
        raise ConfigError(
            f"Invalid build config `{name}` value.",
            context={"path": source, "key": f"{key}.{name}"},
        )
    return value


def _required_bool(payload: dict[str, Any], name: str, *, key: str, source: str) -> bool:
    value = payload.get(name)
    if not isinstance(value, bool):
        raise ConfigError(
            f"Invalid build config `{name}` value.",
            context={"path": source, "key": f"{key}.{name}"},
        )
    return value


def _optional_bool(
    payload: dict[str, Any], name: str, default: bool, *, key: str, source: str
) -> bool:
    if name not in payload:
        return default
    return _required_bool(payload, name, key=key, source=source)


def _required_dict(payload: dict[str, Any], name: str, *, source: str) -> dict[str, Any]:
    value = payload.get(name)
    if not isinstance(value, dict):
        raise ConfigError(
            f"Invalid build config `{name}` value.",
            hint=f"The config must declare a `{name}` object.",
            context={"path": source, "key": name},
        )
    return value


def _optional_dict(payload: dict[str, Any], name: str, *, source: str) -> dict[str, Any]:
    value = payload.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(
            f"Invalid build config `{name}` value.",
            context={"path": source, "key": name},
        )
    return value
