"""
Object Naming
=============

Builds collision-resistant, traversal-safe file names for stored objects.

Handle format:
    [translated_]<owner>_<timestamp_ms>-<suffix>_<filename>

The random suffix keeps two saves of the same owner/filename pair in the
same millisecond apart. Uniqueness is practical, not cryptographic.
"""

from __future__ import annotations

import re
import secrets
import time
import unicodedata
from typing import Final, Optional

DELIVERABLE_PREFIX: Final[str] = "translated_"
SUFFIX_BYTES: Final[int] = 3  # 6 hex chars
# Filesystems cap names at 255 bytes; the handle head uses at most 97 of them
MAX_COMPONENT_BYTES: Final[int] = 120
MAX_EXTENSION_LENGTH: Final[int] = 10

# Characters not allowed in filenames across all platforms (lone surrogates
# cannot be encoded to a filesystem name)
_UNSAFE_CHARS: Final[re.Pattern[str]] = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f\ud800-\udfff]')
_WHITESPACE: Final[re.Pattern[str]] = re.compile(r"\s+")


def _placeholder(kind: str) -> str:
    return f"{kind}-{secrets.token_hex(4)}"


def _truncate_utf8(text: str, max_bytes: int) -> str:
    """Cut ``text`` to at most ``max_bytes`` UTF-8 bytes on a character boundary."""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", "ignore")


def sanitize_filename(filename: Optional[str], replacement: str = "_") -> str:
    """
    Reduce an untrusted filename to a single safe path component.

    Directory components and ``..`` segments are dropped, unsafe
    characters replaced, leading dots removed so the result can never be
    hidden or relative. An empty result becomes a generated placeholder.
    """
    if not filename:
        return _placeholder("file")

    name = unicodedata.normalize("NFC", filename)

    # Keep only the last path component under either separator
    segments = [s for s in re.split(r"[/\\]+", name) if s and s not in {".", ".."}]
    name = segments[-1] if segments else ""

    name = name.replace("..", replacement)
    name = _WHITESPACE.sub(" ", name)
    name = _UNSAFE_CHARS.sub(replacement, name)

    # Remove leading/trailing dots and spaces
    name = name.strip(". ")

    if not name or not name.strip(replacement):
        return _placeholder("file")

    if len(name.encode("utf-8")) > MAX_COMPONENT_BYTES:
        stem, dot, ext = name.rpartition(".")
        if dot and stem and 0 < len(ext) <= MAX_EXTENSION_LENGTH:
            budget = MAX_COMPONENT_BYTES - len(ext.encode("utf-8")) - 1
            name = _truncate_utf8(stem, budget).rstrip(". ") + "." + ext
        else:
            name = _truncate_utf8(name, MAX_COMPONENT_BYTES).rstrip(". ")

    return name


def sanitize_owner_id(owner_id: object) -> str:
    """Sanitize a project/owner identifier for use in a handle."""
    text = str(owner_id) if owner_id is not None else ""
    cleaned = re.sub(r"[^A-Za-z0-9-]", "-", text).strip("-")
    return cleaned[:64] if cleaned else _placeholder("owner")


def name_for(
    owner_id: object,
    original_filename: Optional[str],
    is_deliverable: bool = False,
    now: Optional[float] = None,
) -> str:
    """
    Compose the handle for a new object.

    Args:
        owner_id: Project or owner identifier
        original_filename: Client-supplied filename (untrusted)
        is_deliverable: Prefix for the deliverables collection
        now: Timestamp in seconds (defaults to the current time)

    Returns:
        Handle string safe to join onto a collection root
    """
    timestamp_ms = int((time.time() if now is None else now) * 1000)
    suffix = secrets.token_hex(SUFFIX_BYTES)
    prefix = DELIVERABLE_PREFIX if is_deliverable else ""

    return (
        f"{prefix}{sanitize_owner_id(owner_id)}_{timestamp_ms}-{suffix}_"
        f"{sanitize_filename(original_filename)}"
    )
