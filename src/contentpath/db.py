from __future__ import annotations

import sqlite3
from pathlib import Path

from contentpath.uri import parse_uri

# Columns a provider row exposes to queries, mapped to their storage column.
EXPOSED_COLUMNS: dict[str, str] = {
    "_id": "row_id",
    "_data": "_data",
    "_display_name": "_display_name",
    "_size": "_size",
    "mime_type": "mime_type",
}


def connect_db(path: Path | str, *, read_only: bool = False) -> sqlite3.Connection:
    if read_only:
        conn = sqlite3.connect(f"file:{Path(path)}?mode=ro", uri=True, check_same_thread=False)
    else:
        conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA busy_timeout=5000;")
    if not read_only:
        conn.execute("PRAGMA journal_mode=WAL;")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS content_rows (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            uri TEXT NOT NULL UNIQUE,
            authority TEXT,
            collection_uri TEXT,
            row_id TEXT,
            _data TEXT,
            _display_name TEXT,
            _size INTEGER,
            mime_type TEXT,
            blob_path TEXT,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_content_rows_collection ON content_rows(collection_uri, row_id)"
    )
    conn.commit()


def register_content(
    conn: sqlite3.Connection,
    *,
    uri: str,
    data_path: str | None = None,
    display_name: str | None = None,
    size: int | None = None,
    mime_type: str | None = None,
    blob_path: str | None = None,
    collection_uri: str | None = None,
    row_id: str | None = None,
) -> int:
    """Insert or replace the provider row for `uri` and return its id."""
    parsed = parse_uri(uri)
    if not parsed.is_scheme("content") or not parsed.authority:
        raise ValueError(f"Only content:// identifiers can be registered (got {uri!r})")
    if blob_path is not None and size is None:
        blob = Path(blob_path)
        if blob.is_file():
            size = blob.stat().st_size

    conn.execute(
        """
        INSERT INTO content_rows(
            uri, authority, collection_uri, row_id,
            _data, _display_name, _size, mime_type, blob_path
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(uri) DO UPDATE SET
            authority = excluded.authority,
            collection_uri = excluded.collection_uri,
            row_id = excluded.row_id,
            _data = excluded._data,
            _display_name = excluded._display_name,
            _size = excluded._size,
            mime_type = excluded.mime_type,
            blob_path = excluded.blob_path
        """,
        (
            uri,
            parsed.authority,
            collection_uri,
            row_id,
            data_path,
            display_name,
            size,
            mime_type,
            blob_path,
        ),
    )
    row = conn.execute("SELECT id FROM content_rows WHERE uri = ?", (uri,)).fetchone()
    conn.commit()
    return int(row[0])


def content_stats(conn: sqlite3.Connection) -> dict[str, dict[str, int]]:
    rows = conn.execute(
        """
        SELECT
            COALESCE(authority, 'unknown'),
            COUNT(*),
            SUM(CASE WHEN _data IS NOT NULL THEN 1 ELSE 0 END),
            SUM(CASE WHEN blob_path IS NOT NULL THEN 1 ELSE 0 END)
        FROM content_rows
        GROUP BY authority
        ORDER BY authority
        """
    ).fetchall()
    return {
        str(row[0]): {
            "rows": int(row[1]),
            "with_data_path": int(row[2] or 0),
            "with_blob": int(row[3] or 0),
        }
        for row in rows
    }


__all__ = ["connect_db", "content_stats", "EXPOSED_COLUMNS", "init_db", "register_content"]
