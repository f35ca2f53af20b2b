from __future__ import annotations

from dataclasses import dataclass
from typing import Any, BinaryIO, Protocol, Sequence

from contentpath.storage import AssetStore, StorageDirs
from contentpath.uri import ContentUri


class ContentQueryError(RuntimeError):
    pass


class QueryCursor(Protocol):
    """Row handle returned by a content query.

    `sqlite3.Cursor` satisfies this protocol, so SQLite-backed providers can
    hand their cursors straight back.
    """

    description: Sequence[Sequence[Any]] | None

    def fetchone(self) -> Sequence[Any] | None:
        ...

    def close(self) -> None:
        ...


class ContentQuery(Protocol):
    def query(
        self,
        uri: ContentUri,
        projection: Sequence[str] | None = None,
        selection: str | None = None,
        selection_args: Sequence[str] | None = None,
    ) -> QueryCursor | None:
        ...


class TypeResolver(Protocol):
    def get_type(self, uri: ContentUri) -> str | None:
        ...


class ByteReader(Protocol):
    def open_input_stream(self, uri: ContentUri) -> BinaryIO:
        ...


class ContentResolver(ContentQuery, TypeResolver, ByteReader, Protocol):
    pass


class DocumentDecoder(Protocol):
    def is_document_uri(self, uri: ContentUri) -> bool:
        ...

    def document_id(self, uri: ContentUri) -> str:
        ...


@dataclass(frozen=True)
class HostPlatform:
    content_resolver: ContentResolver
    storage: StorageDirs
    # None means the host predates document references (legacy resolution).
    document_decoder: DocumentDecoder | None = None
    asset_store: AssetStore | None = None


def cursor_columns(cursor: QueryCursor) -> list[str]:
    return [str(col[0]) for col in (cursor.description or ())]


__all__ = [
    "ByteReader",
    "ContentQuery",
    "ContentQueryError",
    "ContentResolver",
    "cursor_columns",
    "DocumentDecoder",
    "HostPlatform",
    "QueryCursor",
    "TypeResolver",
]
