"""
Utils module - Input validation helpers.
"""

from verbiforge.utils.validators import (
    is_allowed_size,
    is_allowed_type,
    is_valid_handle,
    validate_upload,
)

__all__ = [
    "is_allowed_size",
    "is_allowed_type",
    "is_valid_handle",
    "validate_upload",
]
