from __future__ import annotations

import mimetypes

# Some recorders label AMR/3GPP audio with a .3ga extension that the standard
# table either lacks or maps to a video type.
EXTENSION_OVERRIDES = {"3ga": "audio/3gpp"}


def canonicalize_mime_type(mime_type: str | None) -> str | None:
    normalized = (mime_type or "").strip().lower()
    if not normalized:
        return None
    return normalized.split(";", 1)[0].strip() or None


def extension_of(path: str) -> str:
    extension = path
    last_dot = extension.rfind(".")
    if last_dot != -1:
        extension = extension[last_dot + 1 :]
    return extension.lower()


def mime_type_for_extension(path: str) -> str | None:
    extension = extension_of(path)
    override = EXTENSION_OVERRIDES.get(extension)
    if override is not None:
        return override
    if not extension or "/" in extension:
        return None
    guessed, _ = mimetypes.guess_type(f"file.{extension}", strict=False)
    return guessed


__all__ = [
    "canonicalize_mime_type",
    "EXTENSION_OVERRIDES",
    "extension_of",
    "mime_type_for_extension",
]
