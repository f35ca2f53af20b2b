from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import BinaryIO, Literal, Sequence

from contentpath.cache import cache_file_name, prune_download_cache
from contentpath.host import DocumentDecoder, HostPlatform, QueryCursor, cursor_columns
from contentpath.mime import canonicalize_mime_type, mime_type_for_extension
from contentpath.providers import (
    PUBLIC_DOWNLOADS_URI,
    REMOTE_ONLY_KINDS,
    ProviderKind,
    classify,
    media_collection_uri,
    media_kind,
)
from contentpath.uri import ContentUri, parse_uri, strip_file_protocol, with_appended_id

logger = logging.getLogger(__name__)

DATA_COLUMN = "_data"
DISPLAY_NAME_COLUMN = "_display_name"
SIZE_COLUMN = "_size"
ROW_ID_SELECTION = "_id=?"
_NUMERIC_ID = re.compile(r"[0-9]+")

ANDROID_ASSET_PREFIX = "file:///android_asset/"
_ASSET_PATH_OFFSET = len("/android_asset/")

DEFAULT_COPY_CHUNK_BYTES = 64 * 1024
PROGRESS_INTERVAL_BYTES = 1024 * 1024

Strategy = Literal[
    "external_storage",
    "data_column",
    "remote_reference",
    "download_cache",
    "file_path",
    "passthrough",
]


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving an identifier.

    `resolved` is False when nothing could be derived; `path` then carries the
    original identifier text, so callers that only want a string can use it
    directly.
    """

    path: str
    resolved: bool
    strategy: Strategy

    @classmethod
    def passthrough(cls, uri: ContentUri) -> Resolution:
        return cls(path=uri.raw, resolved=False, strategy="passthrough")


def _found(path: str | None, strategy: Strategy) -> Resolution | None:
    if path is None:
        return None
    return Resolution(path=path, resolved=True, strategy=strategy)


def _close_quietly(cursor: QueryCursor) -> None:
    try:
        cursor.close()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Failed to close query cursor: %s", exc)


class UriResolver:
    def __init__(
        self,
        host: HostPlatform,
        *,
        copy_chunk_bytes: int = DEFAULT_COPY_CHUNK_BYTES,
        keep_partial_downloads: bool = False,
        cache_max_bytes: int = 0,
    ):
        if copy_chunk_bytes <= 0:
            raise ValueError("copy_chunk_bytes must be positive")
        self.host = host
        self.copy_chunk_bytes = copy_chunk_bytes
        self.keep_partial_downloads = keep_partial_downloads
        self.cache_max_bytes = cache_max_bytes

    @staticmethod
    def classify(identifier: str | ContentUri) -> ProviderKind:
        return classify(identifier)

    @staticmethod
    def strip_file_protocol(identifier: str) -> str:
        return strip_file_protocol(identifier)

    def resolve_real_path(self, identifier: str | ContentUri) -> str:
        return self.resolve(identifier).path

    def resolve(self, identifier: str | ContentUri) -> Resolution:
        uri = parse_uri(identifier)
        decoder = self.host.document_decoder
        if decoder is None:
            resolution = _found(self.data_column_lookup(uri), "data_column")
        else:
            resolution = self._resolve_with_documents(uri, decoder)

        if resolution is None:
            logger.debug("No real path for %s; returning identifier unchanged", uri)
            return Resolution.passthrough(uri)
        logger.debug("Resolved %s via %s -> %s", uri, resolution.strategy, resolution.path)
        return resolution

    def _resolve_with_documents(self, uri: ContentUri, decoder: DocumentDecoder) -> Resolution | None:
        if decoder.is_document_uri(uri):
            return self._resolve_document(uri, decoder.document_id(uri))

        if uri.is_scheme("content"):
            if classify(uri) == "google_photos":
                # Already a usable remote reference rather than a local path.
                return _found(uri.last_path_segment, "remote_reference")
            return _found(self.data_column_lookup(uri), "data_column")

        if uri.is_scheme("file"):
            return _found(uri.decoded_path, "file_path")

        logger.debug("Unrecognized scheme %r for %s", uri.scheme, uri)
        return None

    def _resolve_document(self, uri: ContentUri, doc_id: str) -> Resolution | None:
        kind = classify(uri)

        if kind == "external_storage":
            volume, sep, relative = doc_id.partition(":")
            if sep and volume.lower() == "primary":
                root = str(self.host.storage.external_storage_root).rstrip("/")
                return _found(f"{root}/{relative}", "external_storage")
            logger.debug("Unhandled storage volume %r for %s", volume, uri)
            return None

        if kind == "downloads":
            if not _NUMERIC_ID.fullmatch(doc_id):
                logger.warning("Non-numeric downloads document id %r for %s", doc_id, uri)
                return None
            content_uri = with_appended_id(PUBLIC_DOWNLOADS_URI, int(doc_id))
            return _found(self.data_column_lookup(content_uri), "data_column")

        if kind == "media":
            type_segment, sep, row_id = doc_id.partition(":")
            media = media_kind(type_segment)
            if media is None or not sep:
                logger.debug("Unsupported media document id %r for %s", doc_id, uri)
                return None
            path = self.data_column_lookup(
                media_collection_uri(media),
                selection=ROW_ID_SELECTION,
                selection_args=[row_id],
            )
            return _found(path, "data_column")

        if kind in REMOTE_ONLY_KINDS:
            return self.download_and_cache(uri)

        logger.debug("Document provider %r has no resolution strategy", uri.authority)
        return None

    def data_column_lookup(
        self,
        identifier: str | ContentUri,
        *,
        selection: str | None = None,
        selection_args: Sequence[str] | None = None,
    ) -> str | None:
        uri = parse_uri(identifier)
        row = self._query_first_row(uri, [DATA_COLUMN], selection, selection_args)
        if row is None:
            return None
        value = row.get(DATA_COLUMN)
        return str(value) if value is not None else None

    def _query_first_row(
        self,
        uri: ContentUri,
        projection: Sequence[str] | None,
        selection: str | None = None,
        selection_args: Sequence[str] | None = None,
    ) -> dict[str, object] | None:
        cursor: QueryCursor | None = None
        try:
            cursor = self.host.content_resolver.query(uri, projection, selection, selection_args)
            if cursor is None:
                return None
            row = cursor.fetchone()
            if row is None:
                return None
            return dict(zip(cursor_columns(cursor), row))
        except Exception as exc:  # noqa: BLE001
            logger.debug("Content query failed for %s: %s", uri, exc)
            return None
        finally:
            if cursor is not None:
                _close_quietly(cursor)

    def download_and_cache(self, identifier: str | ContentUri) -> Resolution:
        uri = parse_uri(identifier)
        metadata = self._query_first_row(uri, None) or {}
        display_name = metadata.get(DISPLAY_NAME_COLUMN)
        logger.debug(
            "Downloading %s (display_name=%s, size=%s)",
            uri,
            display_name,
            metadata.get(SIZE_COLUMN),
        )

        try:
            source = self.host.content_resolver.open_input_stream(uri)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cannot open %s for download; returning identifier unchanged: %s", uri, exc)
            return Resolution.passthrough(uri)

        cache_dir = self.host.storage.cache_dir
        destination = cache_dir / cache_file_name(str(display_name) if display_name else None)
        opened = False
        try:
            with source:
                cache_dir.mkdir(parents=True, exist_ok=True)
                with destination.open("wb") as out:
                    opened = True
                    copied = self._copy(source, out, uri)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Download of %s into %s failed: %s", uri, destination, exc)
            if opened and not self.keep_partial_downloads:
                destination.unlink(missing_ok=True)
            return Resolution.passthrough(uri)

        logger.info("Cached %s as %s (%d bytes)", uri, destination, copied)
        if self.cache_max_bytes > 0:
            prune_download_cache(cache_dir, self.cache_max_bytes, keep=destination)
        return Resolution(path=destination.resolve().as_uri(), resolved=True, strategy="download_cache")

    def _copy(self, source: BinaryIO, out: BinaryIO, uri: ContentUri) -> int:
        copied = 0
        next_report = PROGRESS_INTERVAL_BYTES
        while True:
            chunk = source.read(self.copy_chunk_bytes)
            if not chunk:
                break
            out.write(chunk)
            copied += len(chunk)
            if copied >= next_report:
                logger.debug("Copied %d bytes from %s", copied, uri)
                next_report += PROGRESS_INTERVAL_BYTES
        return copied

    def mime_type(self, identifier: str | ContentUri) -> str | None:
        uri = parse_uri(identifier)
        if uri.raw.startswith("content://"):
            try:
                return canonicalize_mime_type(self.host.content_resolver.get_type(uri))
            except Exception as exc:  # noqa: BLE001
                logger.warning("Type lookup failed for %s: %s", uri, exc)
                return None
        return mime_type_for_extension(uri.decoded_path)

    def open_byte_stream(self, identifier: str | ContentUri) -> BinaryIO:
        raw = str(identifier)
        if raw.startswith("content"):
            return self._open_content(parse_uri(raw))

        if raw.startswith("file://"):
            raw = raw.split("?", 1)[0]
            if raw.startswith(ANDROID_ASSET_PREFIX):
                return self._open_asset(parse_uri(raw))

        # Some providers accept file-shaped identifiers, so try them first.
        try:
            return self._open_content(parse_uri(raw))
        except OSError as exc:
            logger.debug("Content read of %s failed, opening as a local file: %s", raw, exc)

        return open(self.resolve_real_path(raw), "rb")

    def _open_content(self, uri: ContentUri) -> BinaryIO:
        try:
            return self.host.content_resolver.open_input_stream(uri)
        except OSError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise OSError(f"Cannot open {uri}: {exc}") from exc

    def _open_asset(self, uri: ContentUri) -> BinaryIO:
        if self.host.asset_store is None:
            raise FileNotFoundError(f"No asset store available for {uri}")
        relative_path = uri.decoded_path[_ASSET_PATH_OFFSET:]
        return self.host.asset_store.open(relative_path)


__all__ = [
    "ANDROID_ASSET_PREFIX",
    "DATA_COLUMN",
    "DISPLAY_NAME_COLUMN",
    "Resolution",
    "SIZE_COLUMN",
    "Strategy",
    "UriResolver",
]
