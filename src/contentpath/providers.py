from __future__ import annotations

from typing import Literal

from contentpath.uri import ContentUri, parse_uri

ProviderKind = Literal[
    "external_storage",
    "downloads",
    "media",
    "google_photos",
    "drive_storage",
    "unknown",
]

MediaKind = Literal["image", "video", "audio"]

EXTERNAL_STORAGE_AUTHORITY = "com.android.externalstorage.documents"
DOWNLOADS_AUTHORITY = "com.android.providers.downloads.documents"
MEDIA_AUTHORITY = "com.android.providers.media.documents"
GOOGLE_PHOTOS_AUTHORITY = "com.google.android.apps.photos.content"
DRIVE_STORAGE_AUTHORITY = "com.google.android.apps.docs.storage"

KNOWN_AUTHORITIES: dict[str, ProviderKind] = {
    EXTERNAL_STORAGE_AUTHORITY: "external_storage",
    DOWNLOADS_AUTHORITY: "downloads",
    MEDIA_AUTHORITY: "media",
    GOOGLE_PHOTOS_AUTHORITY: "google_photos",
    DRIVE_STORAGE_AUTHORITY: "drive_storage",
}

# Providers whose bytes are only reachable through the byte-read facility.
REMOTE_ONLY_KINDS: frozenset[ProviderKind] = frozenset({"drive_storage"})

PUBLIC_DOWNLOADS_URI = "content://downloads/public_downloads"
MEDIA_COLLECTIONS: dict[MediaKind, str] = {
    "image": "content://media/external/images/media",
    "video": "content://media/external/video/media",
    "audio": "content://media/external/audio/media",
}


def classify(identifier: str | ContentUri) -> ProviderKind:
    uri = parse_uri(identifier)
    if uri.authority is None:
        return "unknown"
    return KNOWN_AUTHORITIES.get(uri.authority, "unknown")


def media_kind(type_segment: str) -> MediaKind | None:
    if type_segment in MEDIA_COLLECTIONS:
        return type_segment  # type: ignore[return-value]
    return None


def media_collection_uri(kind: MediaKind) -> str:
    return MEDIA_COLLECTIONS[kind]


__all__ = [
    "classify",
    "DOWNLOADS_AUTHORITY",
    "DRIVE_STORAGE_AUTHORITY",
    "EXTERNAL_STORAGE_AUTHORITY",
    "GOOGLE_PHOTOS_AUTHORITY",
    "KNOWN_AUTHORITIES",
    "MEDIA_AUTHORITY",
    "MEDIA_COLLECTIONS",
    "media_collection_uri",
    "media_kind",
    "MediaKind",
    "ProviderKind",
    "PUBLIC_DOWNLOADS_URI",
    "REMOTE_ONLY_KINDS",
]
