"""Output directory cleanup."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from binmatrix.observability import StructuredLogger


@dataclass(frozen=True, slots=True)
class CleanReport:
    output_dir: Path
    existed: bool
    entries: tuple[str, ...] = ()
    removed: int = 0
    forced: bool = False

    @property
    def previewed(self) -> bool:
        """True when entries were found but nothing was deleted."""
        return bool(self.entries) and not self.forced


def clean_output_dir(
    output_dir: str | Path,
    *,
    force: bool,
    logger: StructuredLogger | None = None,
) -> CleanReport:
    """Preview or remove everything under *output_dir*.

    Without *force* only the top-level entries are reported. With *force*
    every file is deleted (``removed`` counts files, recursively) and the
    directory is recreated empty.
    """
    log = logger or StructuredLogger()
    root = Path(output_dir)
    if not root.exists():
        return CleanReport(output_dir=root, existed=False, forced=force)

    entries = tuple(sorted(entry.name for entry in root.iterdir()))
    if not entries or not force:
        log.log(
            operation="clean_preview",
            phase="clean",
            job=None,
            message="Listed output directory entries.",
            extra={"entries": len(entries)},
        )
        return CleanReport(output_dir=root, existed=True, entries=entries, forced=force)

    removed = _remove_tree_contents(root, log)
    root.mkdir(parents=True, exist_ok=True)
    log.log(
        operation="clean_remove",
        phase="clean",
        job=None,
        message="Removed output directory contents.",
        extra={"removed": removed},
    )
    return CleanReport(
        output_dir=root,
        existed=True,
        entries=entries,
        removed=removed,
        forced=True,
    )


def _remove_tree_contents(root: Path, log: StructuredLogger) -> int:
    count = 0
    for entry in sorted(root.iterdir()):
        if entry.is_dir() and not entry.is_symlink():
            count += sum(1 for item in entry.rglob("*") if not item.is_dir())
            shutil.rmtree(entry)
        else:
            entry.unlink()
            count += 1
        log.log(
            operation="clean_entry",
            phase="clean",
            job=None,
            message=f"Removed {entry.name}.",
            level="debug",
        )
    return count
