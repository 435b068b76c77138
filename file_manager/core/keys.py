"""Storage key generation."""

import re
import unicodedata
import uuid
from typing import Any, Callable

from file_manager.exceptions import InvalidKeyError

_UNSAFE_RUN = re.compile(r"[^A-Za-z0-9._-]+")
_HYPHEN_RUN = re.compile(r"-+")
_EDGE_JUNK = re.compile(r"^[-.]+|[-.]+$")


def safe_slug(text: str) -> str:
    """Turn arbitrary text into a lower-case, URL and filesystem safe slug."""
    text = unicodedata.normalize("NFKD", text)
    text = _UNSAFE_RUN.sub("-", text)
    text = _HYPHEN_RUN.sub("-", text)
    text = _EDGE_JUNK.sub("", text)
    return text.lower()


def split_extension(name: str) -> tuple[str, str]:
    """
    Split name into (base, ext) where ext starts at the last dot of the final
    path component. ".gitignore" gives ("", ".gitignore"); "README" gives
    ("README", "").
    """
    last_slash = max(name.rfind("/"), name.rfind("\\"))
    dot = name.rfind(".")
    if dot <= last_slash:
        return name, ""
    return name[:dot], name[dot:]


def normalize_prefix(prefix: str | None) -> str:
    """Trim whitespace and slashes, drop empty segments, reject dot segments."""
    if not prefix:
        return ""
    segments = [s.strip() for s in prefix.strip().split("/")]
    segments = [s for s in segments if s]
    for segment in segments:
        if segment in (".", ".."):
            raise InvalidKeyError(f"Invalid key prefix: {prefix!r}")
    return "/".join(segments)


def make_storage_key(
    prefix: str | None,
    original_name: str | None = None,
    id_factory: Callable[[], Any] = uuid.uuid4,
) -> str:
    """
    Build a unique storage key: {prefix}/{slug}-{uuid}{ext}.

    The random identifier is the only source of uniqueness; pass id_factory to
    make the output deterministic. The extension of original_name is kept
    verbatim, the rest of the name is slugged.
    """
    unique_id = str(id_factory())
    ext = ""
    name = ""
    if original_name:
        base, ext = split_extension(original_name)
        name = safe_slug(base)
    filename = f"{name}-{unique_id}{ext}" if name else f"{unique_id}{ext}"
    return "/".join(part for part in (normalize_prefix(prefix), filename) if part)
