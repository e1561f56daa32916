"""
HTTP Delivery Helpers
=====================

Glue between Flask request handlers and the secure file store.

Routing, authentication and project records stay in the application; these
helpers only turn uploads into store calls and stored bytes into download
responses, and map store errors to HTTP statuses without leaking causes.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

from flask import Response, jsonify, send_file
from werkzeug.datastructures import FileStorage

from verbiforge.core.errors import (
    ConfigurationError,
    DecryptionError,
    EncryptionError,
    FileStoreError,
    NotFoundError,
    ValidationError,
)
from verbiforge.core.storage import Collection, SecureFileStore, StoredObject
from verbiforge.utils.validators import validate_upload

DEFAULT_DOWNLOAD_NAME = "download"
DEFAULT_MIME_TYPE = "application/octet-stream"

_log = logging.getLogger("verbiforge.web")


@dataclass(frozen=True)
class UploadedFile:
    content: bytes
    filename: str
    mime_type: str


def read_upload(file: Optional[FileStorage]) -> UploadedFile:
    """Read a multipart upload fully into memory."""
    if file is None or not file.filename:
        raise ValidationError("No file uploaded", rule="missing_file")

    return UploadedFile(
        content=file.read(),
        filename=file.filename,
        mime_type=file.mimetype or DEFAULT_MIME_TYPE,
    )


async def save_upload(
    store: SecureFileStore,
    file: Optional[FileStorage],
    owner_id: str,
    collection: Collection = Collection.ORIGINALS,
    actor: Optional[str] = None,
) -> StoredObject:
    """
    Validate an upload against the store's policy and save it.

    Raises:
        ValidationError: Missing, empty, oversized or disallowed file
    """
    upload = read_upload(file)

    validate_upload(upload.content, upload.mime_type, store.policy)

    return await store.save(
        upload.content,
        upload.filename,
        upload.mime_type,
        owner_id,
        collection,
        actor=actor,
    )


def build_download_response(
    content: bytes,
    download_name: Optional[str],
    mime_type: Optional[str] = None,
) -> Response:
    """
    Attachment response for decrypted bytes.

    Must be called inside a request context.
    """
    response = send_file(
        io.BytesIO(content),
        mimetype=mime_type or DEFAULT_MIME_TYPE,
        as_attachment=True,
        download_name=download_name or DEFAULT_DOWNLOAD_NAME,
        max_age=0,
    )
    response.headers["Cache-Control"] = "no-store"
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


def error_response(error: FileStoreError) -> tuple[Response, int]:
    """
    Map a store error to a JSON body and status.

    Crypto failures are reported as a generic "file unavailable";
    validation failures name the violated rule.
    """
    if isinstance(error, ValidationError):
        return jsonify({"error": str(error), "rule": error.rule}), 400
    if isinstance(error, NotFoundError):
        return jsonify({"error": "File not found"}), 404
    if isinstance(error, (DecryptionError, EncryptionError)):
        return jsonify({"error": "File unavailable"}), 500
    if isinstance(error, ConfigurationError):
        _log.error("File store is misconfigured: %s", error)
        return jsonify({"error": "Service unavailable"}), 503

    _log.error("File store failure: %s", error)
    return jsonify({"error": "File unavailable"}), 500
