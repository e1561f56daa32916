"""
Validation Utilities
====================

Input validation for uploads and handles.

The store never enforces upload policy itself; request handlers call
these before ``save`` so the uploader gets the specific rule violated.
"""

from __future__ import annotations

import re
from typing import Final, Optional

from verbiforge.core.config import UploadPolicy
from verbiforge.core.errors import ValidationError

MAX_HANDLE_BYTES: Final[int] = 255  # filesystem name limit, in bytes

_HANDLE_FORBIDDEN: Final[re.Pattern[str]] = re.compile(r'[/\\\x00-\x1f\x7f]')


def _normalize_mime_type(mime_type: Optional[str]) -> str:
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def is_allowed_type(mime_type: Optional[str], policy: Optional[UploadPolicy] = None) -> bool:
    """True if the MIME type (parameters ignored) is in the allow-list."""
    policy = policy or UploadPolicy()
    return _normalize_mime_type(mime_type) in policy.allowed_mime_types


def is_allowed_size(byte_length: int, policy: Optional[UploadPolicy] = None) -> bool:
    """True if the size is positive and within the configured maximum."""
    policy = policy or UploadPolicy()
    return 0 < byte_length <= policy.max_file_size


def validate_upload(
    content: bytes,
    mime_type: Optional[str],
    policy: Optional[UploadPolicy] = None,
) -> None:
    """
    Validate an upload against the policy.

    Raises:
        ValidationError: With ``rule`` set to ``empty``, ``max_size`` or
            ``mime_type``
    """
    policy = policy or UploadPolicy()

    if not content:
        raise ValidationError("File is empty", rule="empty")

    if not is_allowed_size(len(content), policy):
        raise ValidationError(
            f"File exceeds the maximum size of {policy.max_file_size} bytes",
            rule="max_size",
        )

    if not is_allowed_type(mime_type, policy):
        raise ValidationError(
            f"File type {mime_type!r} is not allowed",
            rule="mime_type",
        )


def is_valid_handle(handle: object) -> bool:
    """
    Check that a handle is a single, visible path component.

    Rejects separators, control characters, ``..`` sequences and leading
    dots (temp files are dot-prefixed, so they can never be addressed).
    Length is measured in UTF-8 bytes, as the filesystem measures it.
    """
    if not isinstance(handle, str) or not handle:
        return False
    try:
        if len(handle.encode("utf-8")) > MAX_HANDLE_BYTES:
            return False
    except UnicodeEncodeError:
        return False
    if handle.startswith(".") or ".." in handle:
        return False
    return _HANDLE_FORBIDDEN.search(handle) is None
