from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath, PureWindowsPath

logger = logging.getLogger(__name__)

FALLBACK_FILE_NAME = "download"


@dataclass
class PruneReport:
    removed: list[str] = field(default_factory=list)
    freed_bytes: int = 0
    remaining_bytes: int = 0


def cache_file_name(display_name: str | None) -> str:
    if not display_name:
        return FALLBACK_FILE_NAME
    # Providers report arbitrary strings; keep only the final component.
    name = PureWindowsPath(PurePosixPath(display_name.strip()).name).name
    if name in {"", ".", ".."}:
        return FALLBACK_FILE_NAME
    return name


def _cache_files(cache_dir: Path) -> list[Path]:
    if not cache_dir.is_dir():
        return []
    return [p for p in cache_dir.iterdir() if p.is_file()]


def cache_usage(cache_dir: Path) -> int:
    return sum(p.stat().st_size for p in _cache_files(cache_dir))


def prune_download_cache(
    cache_dir: Path,
    max_bytes: int,
    *,
    keep: Path | None = None,
) -> PruneReport:
    """Evict least recently modified files until the cache fits in `max_bytes`.

    A `max_bytes` of zero or less means the cache is unbounded. `keep` is never
    removed, even if it alone exceeds the budget.
    """
    files = _cache_files(cache_dir)
    total = sum(p.stat().st_size for p in files)
    report = PruneReport(remaining_bytes=total)
    if max_bytes <= 0 or total <= max_bytes:
        return report

    keep_resolved = keep.resolve() if keep is not None else None
    for path in sorted(files, key=lambda p: p.stat().st_mtime):
        if report.remaining_bytes <= max_bytes:
            break
        if keep_resolved is not None and path.resolve() == keep_resolved:
            continue
        size = path.stat().st_size
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Failed to evict cached download %s: %s", path, exc)
            continue
        report.removed.append(str(path))
        report.freed_bytes += size
        report.remaining_bytes -= size

    if report.removed:
        logger.info(
            "Pruned %d cached downloads (%d bytes freed, %d bytes remaining)",
            len(report.removed),
            report.freed_bytes,
            report.remaining_bytes,
        )
    return report


__all__ = [
    "cache_file_name",
    "cache_usage",
    "FALLBACK_FILE_NAME",
    "prune_download_cache",
    "PruneReport",
]
