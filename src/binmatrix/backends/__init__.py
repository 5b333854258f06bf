"""Compiler-packager backend protocol and implementations."""

from __future__ import annotations

from pathlib import Path

from binmatrix.errors import ConfigError

from .base import PackagerBackend, collect_artifact
from .inprocess import InProcessBackend
from .pkg import PkgBackend

BACKEND_NAMES = ("pkg", "inprocess")


def get_backend(
    name: str,
    *,
    project_root: Path,
    timeout: float | None = None,
) -> PackagerBackend:
    if name == "pkg":
        return PkgBackend(project_root=project_root, timeout=timeout)
    if name == "inprocess":
        return InProcessBackend()
    raise ConfigError(
        f"Unsupported packager backend {name!r}.",
        hint=f"Choose one of: {', '.join(BACKEND_NAMES)}.",
    )


__all__ = [
    "BACKEND_NAMES",
    "InProcessBackend",
    "PackagerBackend",
    "PkgBackend",
    "collect_artifact",
    "get_backend",
]
