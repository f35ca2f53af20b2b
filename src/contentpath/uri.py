from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import unquote, urlsplit

FILE_PREFIX = "file://"


@dataclass(frozen=True)
class ContentUri:
    """Parsed view of an identifier string.

    Parsing never fails: a malformed string simply ends up with no scheme and
    its text as the path, so callers can treat every identifier uniformly.
    """

    raw: str
    scheme: str | None
    authority: str | None
    path: str
    query: str | None = None

    @property
    def path_segments(self) -> list[str]:
        return [unquote(part) for part in self.path.split("/") if part]

    @property
    def decoded_path(self) -> str:
        return unquote(self.path)

    @property
    def last_path_segment(self) -> str | None:
        segments = self.path_segments
        return segments[-1] if segments else None

    def is_scheme(self, scheme: str) -> bool:
        return (self.scheme or "").lower() == scheme.lower()

    def __str__(self) -> str:
        return self.raw


def parse_uri(identifier: str | ContentUri) -> ContentUri:
    if isinstance(identifier, ContentUri):
        return identifier
    raw = str(identifier)
    try:
        parts = urlsplit(raw)
    except ValueError:
        return ContentUri(raw=raw, scheme=None, authority=None, path=raw)

    # urlsplit treats "C:\\x" style strings and bare "name:value" as schemes;
    # only strings carrying "//" after the scheme count as hierarchical URIs.
    if not parts.scheme or not raw[len(parts.scheme) + 1 :].startswith("//"):
        path, _, query = raw.partition("?")
        return ContentUri(raw=raw, scheme=None, authority=None, path=path, query=query or None)

    return ContentUri(
        raw=raw,
        scheme=parts.scheme.lower(),
        authority=parts.netloc or None,
        path=parts.path,
        query=parts.query or None,
    )


def strip_file_protocol(identifier: str) -> str:
    if identifier.startswith(FILE_PREFIX):
        return identifier[len(FILE_PREFIX) :]
    return identifier


def with_appended_id(base: str, row_id: int) -> str:
    return f"{base.rstrip('/')}/{int(row_id)}"


class DocumentsContractDecoder:
    """Decodes `content://<authority>/document/<id>` style references.

    Tree-scoped references (`tree/<tree-id>/document/<id>`) are accepted as well.
    """

    def is_document_uri(self, uri: ContentUri) -> bool:
        return self._document_id(uri) is not None

    def document_id(self, uri: ContentUri) -> str:
        doc_id = self._document_id(uri)
        if doc_id is None:
            raise ValueError(f"Not a document reference: {uri}")
        return doc_id

    @staticmethod
    def _document_id(uri: ContentUri) -> str | None:
        if not uri.is_scheme("content") or not uri.authority:
            return None
        segments = uri.path_segments
        if len(segments) == 2 and segments[0] == "document":
            return segments[1]
        if len(segments) == 4 and segments[0] == "tree" and segments[2] == "document":
            return segments[3]
        return None


__all__ = [
    "ContentUri",
    "DocumentsContractDecoder",
    "FILE_PREFIX",
    "parse_uri",
    "strip_file_protocol",
    "with_appended_id",
]
