from __future__ import annotations

import base64
import json
import logging
import sqlite3
import threading
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import AsyncIterator, cast

from dotenv import load_dotenv
from mcp.server.fastmcp import Context, FastMCP
from mcp.types import ToolAnnotations

from contentpath.cache import prune_download_cache
from contentpath.config import Settings, load_settings
from contentpath.content_store import build_local_host
from contentpath.db import connect_db, init_db, register_content
from contentpath.logging_utils import configure_contentpath_logging
from contentpath.resolver import UriResolver
from contentpath.uri import strip_file_protocol

logger = logging.getLogger("contentpath")

DEFAULT_READ_BYTES = 1024 * 1024
MAX_READ_BYTES = 16 * 1024 * 1024


@dataclass
class AppState:
    settings: Settings
    conn: sqlite3.Connection
    conn_lock: threading.Lock
    resolver: UriResolver


def _build_state(settings: Settings) -> AppState:
    conn = connect_db(settings.paths.db_path)
    init_db(conn)
    conn_lock = threading.Lock()
    host = build_local_host(
        conn,
        cache_dir=settings.paths.cache_dir,
        external_storage_root=settings.paths.external_storage_root,
        assets_dir=settings.paths.assets_dir,
        legacy_mode=settings.legacy_mode,
        lock=conn_lock,
    )
    resolver = UriResolver(
        host,
        copy_chunk_bytes=settings.copy_chunk_bytes,
        keep_partial_downloads=settings.keep_partial_downloads,
        cache_max_bytes=settings.cache_max_bytes,
    )
    return AppState(settings=settings, conn=conn, conn_lock=conn_lock, resolver=resolver)


@asynccontextmanager
async def app_lifespan(_mcp: FastMCP) -> AsyncIterator[AppState]:
    load_dotenv()
    settings = load_settings()
    log_path = configure_contentpath_logging(settings.paths.log_file, level=settings.log_level)
    state = _build_state(settings)

    logger.info("Using contentpath log file: %s", log_path)
    logger.info("Using content store: %s", settings.paths.db_path)
    logger.info("Using download cache: %s", settings.paths.cache_dir)
    logger.info("Log level: %s", settings.log_level)
    if settings.legacy_mode:
        logger.info("Legacy resolution enabled; document references are not decoded")

    try:
        yield state
    finally:
        with state.conn_lock:
            state.conn.close()


mcp = FastMCP("contentpath-mcp", lifespan=app_lifespan)


def _state(ctx: Context) -> AppState:
    lifespan_state = ctx.request_context.lifespan_context
    return cast(AppState, lifespan_state)


def _require_uri(uri: str) -> str:
    if not isinstance(uri, str) or not uri.strip():
        raise ValueError("Missing uri")
    return uri.strip()


@mcp.tool(
    name="resolve_real_path",
    description=(
        "Resolve a file://, content:// or bare identifier to a directly readable local path. "
        "Cloud-backed documents are copied into the download cache first. When nothing can be "
        "derived the original identifier is returned with resolved=false."
    ),
    annotations=ToolAnnotations(title="Resolve Real Path", readOnlyHint=False, destructiveHint=False),
)
def resolve_real_path(uri: str, ctx: Context) -> str:
    state = _state(ctx)
    resolution = state.resolver.resolve(_require_uri(uri))
    return json.dumps(asdict(resolution), indent=2, ensure_ascii=False)


@mcp.tool(
    name="get_mime_type",
    description=(
        "Return the MIME type of an identifier: the provider's declared type for content:// "
        "identifiers, otherwise derived from the file extension."
    ),
    annotations=ToolAnnotations(title="Get MIME Type", readOnlyHint=True, destructiveHint=False),
)
def get_mime_type(uri: str, ctx: Context) -> str:
    state = _state(ctx)
    uri = _require_uri(uri)
    return json.dumps({"uri": uri, "mime_type": state.resolver.mime_type(uri)}, indent=2)


@mcp.tool(
    name="read_content",
    description=(
        "Read up to max_bytes from an identifier (content://, file:///android_asset/, file:// or "
        "a bare path) and return them base64-encoded with the detected MIME type."
    ),
    annotations=ToolAnnotations(title="Read Content", readOnlyHint=True, destructiveHint=False),
)
def read_content(uri: str, ctx: Context, max_bytes: int = DEFAULT_READ_BYTES) -> str:
    state = _state(ctx)
    uri = _require_uri(uri)
    max_bytes = max(1, min(MAX_READ_BYTES, int(max_bytes)))

    with state.resolver.open_byte_stream(uri) as stream:
        data = stream.read(max_bytes + 1)
    truncated = len(data) > max_bytes
    data = data[:max_bytes]

    payload = {
        "uri": uri,
        "mime_type": state.resolver.mime_type(uri),
        "bytes": len(data),
        "truncated": truncated,
        "data_base64": base64.b64encode(data).decode("ascii"),
    }
    return json.dumps(payload, indent=2)


@mcp.tool(
    name="strip_file_protocol",
    description="Remove a leading file:// prefix from an identifier; other strings are returned unchanged.",
    annotations=ToolAnnotations(title="Strip File Protocol", readOnlyHint=True, destructiveHint=False),
)
def strip_file_protocol_tool(uri: str) -> str:
    return strip_file_protocol(uri)


@mcp.tool(
    name="register_content",
    description=(
        "Register a content:// row in the local content store: an optional _data path, display "
        "name, MIME type, and the blob file holding its bytes. Media rows use collection_uri + "
        "row_id so media document references can find them."
    ),
    annotations=ToolAnnotations(title="Register Content", readOnlyHint=False, destructiveHint=False),
)
def register_content_tool(
    uri: str,
    ctx: Context,
    data_path: str | None = None,
    display_name: str | None = None,
    mime_type: str | None = None,
    blob_path: str | None = None,
    collection_uri: str | None = None,
    row_id: str | None = None,
) -> str:
    state = _state(ctx)
    with state.conn_lock:
        content_id = register_content(
            state.conn,
            uri=_require_uri(uri),
            data_path=data_path,
            display_name=display_name,
            mime_type=mime_type,
            blob_path=blob_path,
            collection_uri=collection_uri,
            row_id=row_id,
        )
    return json.dumps({"id": content_id}, indent=2)


@mcp.tool(
    name="prune_download_cache",
    description=(
        "Evict the least recently written cached downloads until the cache fits in max_bytes "
        "(defaults to CONTENTPATH_CACHE_MAX_BYTES; 0 means unbounded)."
    ),
    annotations=ToolAnnotations(title="Prune Download Cache", readOnlyHint=False, destructiveHint=True),
)
def prune_download_cache_tool(ctx: Context, max_bytes: int | None = None) -> str:
    state = _state(ctx)
    budget = state.settings.cache_max_bytes if max_bytes is None else int(max_bytes)
    report = prune_download_cache(state.settings.paths.cache_dir, budget)
    return json.dumps(asdict(report), indent=2)


@mcp.tool(
    name="get_debug_log_path",
    description="Return the contentpath log file path and whether it exists.",
    annotations=ToolAnnotations(title="Get Debug Log Path", readOnlyHint=True, destructiveHint=False),
)
def get_debug_log_path(ctx: Context) -> str:
    log_path = _state(ctx).settings.paths.log_file
    payload = {
        "path": str(log_path),
        "browser_url": log_path.as_uri(),
        "exists": log_path.is_file(),
    }
    return json.dumps(payload, indent=2)


def main() -> None:
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
