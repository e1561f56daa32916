"""
Web module - Flask helpers for uploads and downloads.
"""

from verbiforge.web.delivery import (
    UploadedFile,
    build_download_response,
    error_response,
    read_upload,
    save_upload,
)

__all__ = [
    "UploadedFile",
    "build_download_response",
    "error_response",
    "read_upload",
    "save_upload",
]
