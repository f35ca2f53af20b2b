from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Any, BinaryIO, Sequence

from contentpath.db import EXPOSED_COLUMNS
from contentpath.host import ContentQueryError, HostPlatform
from contentpath.resolver import ROW_ID_SELECTION
from contentpath.storage import DirectoryAssetStore, StorageDirs
from contentpath.uri import ContentUri, DocumentsContractDecoder


class MaterializedCursor:
    """Rows fetched while the connection lock was held."""

    def __init__(self, description: Sequence[Sequence[Any]] | None, rows: list[sqlite3.Row]):
        self.description = description
        self._rows = rows

    def fetchone(self) -> sqlite3.Row | None:
        return self._rows.pop(0) if self._rows else None

    def close(self) -> None:
        self._rows = []


class SqliteContentResolver:
    """Serves provider queries and byte reads from a `content_rows` table."""

    def __init__(self, conn: sqlite3.Connection, *, lock: threading.Lock | None = None):
        self.conn = conn
        self.lock = lock or threading.Lock()

    @staticmethod
    def _select_list(projection: Sequence[str] | None) -> str:
        columns = list(projection) if projection is not None else list(EXPOSED_COLUMNS)
        if not columns:
            raise ContentQueryError("Empty projection")
        parts = []
        for column in columns:
            source = EXPOSED_COLUMNS.get(column)
            if source is None:
                raise ContentQueryError(f"Unknown column: {column}")
            parts.append(f"{source} AS {column}")
        return ", ".join(parts)

    def query(
        self,
        uri: ContentUri,
        projection: Sequence[str] | None = None,
        selection: str | None = None,
        selection_args: Sequence[str] | None = None,
    ) -> MaterializedCursor:
        select_list = self._select_list(projection)
        if selection is None:
            sql = f"SELECT {select_list} FROM content_rows WHERE uri = ?"
            params: tuple[object, ...] = (uri.raw,)
        elif selection.replace(" ", "") == ROW_ID_SELECTION:
            if not selection_args or len(selection_args) != 1:
                raise ContentQueryError("Selection _id=? requires exactly one argument")
            sql = f"SELECT {select_list} FROM content_rows WHERE collection_uri = ? AND row_id = ?"
            params = (uri.raw, str(selection_args[0]))
        else:
            raise ContentQueryError(f"Unsupported selection: {selection}")

        with self.lock:
            cursor = self.conn.execute(sql + " ORDER BY id LIMIT 1", params)
            try:
                return MaterializedCursor(cursor.description, cursor.fetchall())
            finally:
                cursor.close()

    def get_type(self, uri: ContentUri) -> str | None:
        with self.lock:
            row = self.conn.execute(
                "SELECT mime_type FROM content_rows WHERE uri = ?", (uri.raw,)
            ).fetchone()
        return row[0] if row else None

    def open_input_stream(self, uri: ContentUri) -> BinaryIO:
        if uri.is_scheme("file"):
            return open(uri.decoded_path, "rb")
        if not uri.is_scheme("content"):
            raise FileNotFoundError(f"No content provider for {uri}")

        with self.lock:
            row = self.conn.execute(
                "SELECT blob_path FROM content_rows WHERE uri = ?", (uri.raw,)
            ).fetchone()
        if row is None or not row[0]:
            raise FileNotFoundError(f"No content stored for {uri}")
        return Path(row[0]).open("rb")


def build_local_host(
    conn: sqlite3.Connection,
    *,
    cache_dir: Path,
    external_storage_root: Path,
    assets_dir: Path | None = None,
    legacy_mode: bool = False,
    lock: threading.Lock | None = None,
) -> HostPlatform:
    return HostPlatform(
        content_resolver=SqliteContentResolver(conn, lock=lock),
        storage=StorageDirs(cache_dir=cache_dir, external_storage_root=external_storage_root),
        document_decoder=None if legacy_mode else DocumentsContractDecoder(),
        asset_store=DirectoryAssetStore(assets_dir) if assets_dir is not None else None,
    )


__all__ = ["build_local_host", "MaterializedCursor", "SqliteContentResolver"]
