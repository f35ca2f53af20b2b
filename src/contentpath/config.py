from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _clean_env(value: str | None) -> str | None:
    if value is None:
        return None
    if "${" in value:
        return None
    value = value.strip()
    return value or None


def _env_bool(name: str, default: bool = False) -> bool:
    value = _clean_env(os.getenv(name))
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, minimum: int | None = None) -> int:
    value = _clean_env(os.getenv(name))
    if value is None:
        out = default
    else:
        try:
            out = int(value)
        except ValueError:
            out = default
    if minimum is not None:
        out = max(minimum, out)
    return out


def _env_path(name: str, default: Path) -> Path:
    value = _clean_env(os.getenv(name))
    if value is None:
        return default
    return Path(value).expanduser().resolve()


@dataclass(frozen=True)
class Paths:
    root: Path
    db_path: Path
    cache_dir: Path
    external_storage_root: Path
    assets_dir: Path
    log_file: Path


@dataclass(frozen=True)
class Settings:
    paths: Paths
    copy_chunk_bytes: int
    cache_max_bytes: int
    keep_partial_downloads: bool
    legacy_mode: bool
    log_level: str


def resolve_paths() -> Paths:
    raw_path = _clean_env(os.getenv("CONTENTPATH_HOME"))
    if raw_path:
        root = Path(raw_path).expanduser().resolve()
    else:
        root = (Path.home() / "ContentPath").resolve()
    root.mkdir(parents=True, exist_ok=True)

    return Paths(
        root=root,
        db_path=_env_path("CONTENTPATH_DB_PATH", root / "content.db"),
        cache_dir=_env_path("CONTENTPATH_CACHE_DIR", root / "cache"),
        external_storage_root=_env_path("CONTENTPATH_EXTERNAL_STORAGE", root / "external"),
        assets_dir=_env_path("CONTENTPATH_ASSETS_DIR", root / "assets"),
        log_file=root / "logs" / "contentpath.log",
    )


def load_settings() -> Settings:
    return Settings(
        paths=resolve_paths(),
        copy_chunk_bytes=_env_int("CONTENTPATH_COPY_CHUNK_BYTES", default=64 * 1024, minimum=1),
        cache_max_bytes=_env_int("CONTENTPATH_CACHE_MAX_BYTES", default=0, minimum=0),
        keep_partial_downloads=_env_bool("CONTENTPATH_KEEP_PARTIAL_DOWNLOADS", default=False),
        legacy_mode=_env_bool("CONTENTPATH_LEGACY_MODE", default=False),
        log_level=(_clean_env(os.getenv("CONTENTPATH_LOG_LEVEL")) or "INFO").upper(),
    )
