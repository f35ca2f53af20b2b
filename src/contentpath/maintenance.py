from __future__ import annotations

import argparse
import json
import sqlite3
from dataclasses import asdict

from contentpath.cache import cache_usage, prune_download_cache
from contentpath.config import Settings, load_settings
from contentpath.content_store import build_local_host
from contentpath.db import connect_db, content_stats, init_db, register_content
from contentpath.resolver import UriResolver


def build_resolver(conn: sqlite3.Connection, settings: Settings) -> UriResolver:
    host = build_local_host(
        conn,
        cache_dir=settings.paths.cache_dir,
        external_storage_root=settings.paths.external_storage_root,
        assets_dir=settings.paths.assets_dir,
        legacy_mode=settings.legacy_mode,
    )
    return UriResolver(
        host,
        copy_chunk_bytes=settings.copy_chunk_bytes,
        keep_partial_downloads=settings.keep_partial_downloads,
        cache_max_bytes=settings.cache_max_bytes,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="contentpath identifier tools")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Resolve an identifier to a readable path")
    resolve.add_argument("uri")

    mime = sub.add_parser("mime", help="Print the MIME type of an identifier")
    mime.add_argument("uri")

    register = sub.add_parser("register", help="Register a content:// row in the local store")
    register.add_argument("uri")
    register.add_argument("--data-path")
    register.add_argument("--display-name")
    register.add_argument("--size", type=int)
    register.add_argument("--mime-type")
    register.add_argument("--blob-path")
    register.add_argument("--collection-uri")
    register.add_argument("--row-id")

    prune = sub.add_parser("prune-cache", help="Evict cached downloads beyond a byte budget")
    prune.add_argument("--max-bytes", type=int, help="Defaults to CONTENTPATH_CACHE_MAX_BYTES")

    sub.add_parser("stats", help="Print content store and cache statistics")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = load_settings()
    conn = connect_db(settings.paths.db_path)
    init_db(conn)

    try:
        if args.command == "resolve":
            resolution = build_resolver(conn, settings).resolve(args.uri)
            print(json.dumps(asdict(resolution), indent=2))
            return

        if args.command == "mime":
            mime_type = build_resolver(conn, settings).mime_type(args.uri)
            print(json.dumps({"uri": args.uri, "mime_type": mime_type}, indent=2))
            return

        if args.command == "register":
            row_id = register_content(
                conn,
                uri=args.uri,
                data_path=args.data_path,
                display_name=args.display_name,
                size=args.size,
                mime_type=args.mime_type,
                blob_path=args.blob_path,
                collection_uri=args.collection_uri,
                row_id=args.row_id,
            )
            print(json.dumps({"action": "register", "id": row_id}, indent=2))
            return

        if args.command == "prune-cache":
            max_bytes = args.max_bytes if args.max_bytes is not None else settings.cache_max_bytes
            report = prune_download_cache(settings.paths.cache_dir, max_bytes)
            print(json.dumps({"action": "prune-cache", **asdict(report)}, indent=2))
            return

        if args.command == "stats":
            payload = {
                "content_rows": content_stats(conn),
                "cache_bytes": cache_usage(settings.paths.cache_dir),
                "cache_max_bytes": settings.cache_max_bytes,
            }
            print(json.dumps(payload, indent=2))
            return
    finally:
        conn.close()


if __name__ == "__main__":
    main()
