from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Protocol


@dataclass(frozen=True)
class StorageDirs:
    cache_dir: Path
    external_storage_root: Path


class AssetStore(Protocol):
    def open(self, relative_path: str) -> BinaryIO:
        ...


class DirectoryAssetStore:
    """Read-only asset bundle backed by a directory on disk."""

    def __init__(self, root: Path | str):
        self.root = Path(root).expanduser().resolve()

    def resolve(self, relative_path: str) -> Path:
        if not relative_path:
            raise FileNotFoundError("No asset path provided")
        path = (self.root / relative_path.lstrip("/")).resolve()
        if path != self.root and self.root not in path.parents:
            raise FileNotFoundError(f"Asset path escapes bundle: {relative_path}")
        if not path.is_file():
            raise FileNotFoundError(f"Asset not found: {relative_path}")
        return path

    def open(self, relative_path: str) -> BinaryIO:
        return self.resolve(relative_path).open("rb")


__all__ = ["AssetStore", "DirectoryAssetStore", "StorageDirs"]
