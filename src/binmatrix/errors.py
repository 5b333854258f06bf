"""Typed error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import ClassVar


class ErrorCode(StrEnum):
    """Stable error identifiers used across the build phases."""

    CONFIG = "E_CONFIG"
    PLAN_EMPTY = "E_PLAN_EMPTY"
    BACKEND_EXECUTION = "E_BACKEND_EXECUTION"
    OUTPUT_NOT_FOUND = "E_OUTPUT_NOT_FOUND"
    MANIFEST_NOT_FOUND = "E_MANIFEST_NOT_FOUND"
    MANIFEST = "E_MANIFEST"
    PACKAGING = "E_PACKAGING"


# Context keys rendered first, in this order; the rest follow as given.
_CONTEXT_ORDER = ("target", "artifact", "path", "key")


class BinmatrixError(Exception):
    """Base error carrying a stable code, an optional hint, and context.

    Subclasses pin ``error_code``. Context values identify what failed, e.g.
    the build ``target``, the ``artifact`` name, or the config ``key``.
    """

    error_code: ClassVar[ErrorCode]

    code: str
    hint: str | None
    context: dict[str, str]

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = self.error_code.value
        self.hint = hint
        self.context = {k: v for k, v in (context or {}).items() if v}

    @property
    def message(self) -> str:
        return str(self.args[0])

    def __str__(self) -> str:
        lines = [self.message]
        if self.hint:
            lines.append(f"Hint: {self.hint}")
        lines.extend(f"  {key}: {value}" for key, value in self._ordered_context())
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": self.message,
            "context": dict(self._ordered_context()),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload

    def _ordered_context(self) -> list[tuple[str, str]]:
        leading = [(key, self.context[key]) for key in _CONTEXT_ORDER if key in self.context]
        rest = [(key, value) for key, value in self.context.items() if key not in _CONTEXT_ORDER]
        return leading + rest


class ConfigError(BinmatrixError):
    error_code = ErrorCode.CONFIG


class PlanEmptyError(BinmatrixError):
    error_code = ErrorCode.PLAN_EMPTY


class BackendExecutionError(BinmatrixError):
    error_code = ErrorCode.BACKEND_EXECUTION


class OutputNotFoundError(BinmatrixError):
    error_code = ErrorCode.OUTPUT_NOT_FOUND


class ManifestNotFoundError(BinmatrixError):
    error_code = ErrorCode.MANIFEST_NOT_FOUND


class ManifestError(BinmatrixError):
    error_code = ErrorCode.MANIFEST


class PackagingError(BinmatrixError):
    error_code = ErrorCode.PACKAGING


__all__ = [
    "BackendExecutionError",
    "BinmatrixError",
    "ConfigError",
    "ErrorCode",
    "ManifestError",
    "ManifestNotFoundError",
    "OutputNotFoundError",
    "PackagingError",
    "PlanEmptyError",
]
