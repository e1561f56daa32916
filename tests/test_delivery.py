"""
HTTP Delivery Tests

Flask glue: multipart uploads into the store, attachment downloads and
error mapping.
"""

import io

import pytest
from flask import Flask
from werkzeug.datastructures import FileStorage

from verbiforge.core.config import UploadPolicy
from verbiforge.core.errors import (
    ConfigurationError,
    DecryptionError,
    EncryptionError,
    NotFoundError,
    StorageIOError,
    ValidationError,
)
from verbiforge.core.storage import Collection, SecureFileStore
from verbiforge.web.delivery import (
    build_download_response,
    error_response,
    read_upload,
    save_upload,
)

from tests.conftest import XLSX_MIME


@pytest.fixture
def app():
    app = Flask(__name__)
    app.config["TESTING"] = True
    return app


def _upload(content, filename="quote.xlsx", mime_type=XLSX_MIME):
    return FileStorage(stream=io.BytesIO(content), filename=filename, content_type=mime_type)


class TestSaveUpload:

    @pytest.mark.asyncio
    async def test_valid_upload_is_stored(self, store, xlsx_bytes):
        stored = await save_upload(store, _upload(xlsx_bytes), "proj-123", actor="user-1")

        assert stored.original_filename == "quote.xlsx"
        assert stored.mime_type == XLSX_MIME
        assert await store.retrieve(stored.handle) == xlsx_bytes

    @pytest.mark.asyncio
    async def test_deliverable_upload(self, store):
        stored = await save_upload(
            store, _upload(b"translated", "out.txt", "text/plain"), "proj-1",
            Collection.DELIVERABLES,
        )

        assert await store.retrieve(stored.handle, Collection.DELIVERABLES) == b"translated"

    @pytest.mark.asyncio
    async def test_oversized_upload(self, roots, codec):
        store = SecureFileStore(roots, codec, UploadPolicy(max_file_size=10))

        with pytest.raises(ValidationError) as exc_info:
            await save_upload(store, _upload(b"x" * 11), "proj-1")

        assert exc_info.value.rule == "max_size"
        assert await store.list_handles() == []

    @pytest.mark.asyncio
    async def test_disallowed_type(self, store):
        with pytest.raises(ValidationError) as exc_info:
            await save_upload(store, _upload(b"MZ...", "setup.exe", "application/x-msdownload"), "p")

        assert exc_info.value.rule == "mime_type"

    @pytest.mark.asyncio
    async def test_empty_upload(self, store):
        with pytest.raises(ValidationError) as exc_info:
            await save_upload(store, _upload(b""), "p")

        assert exc_info.value.rule == "empty"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("file", [None, FileStorage(stream=io.BytesIO(b"x"), filename="")])
    async def test_missing_file(self, store, file):
        with pytest.raises(ValidationError) as exc_info:
            await save_upload(store, file, "p")

        assert exc_info.value.rule == "missing_file"

    def test_read_upload_defaults_mime_type(self):
        upload = read_upload(FileStorage(stream=io.BytesIO(b"abc"), filename="a.bin"))

        assert upload.content == b"abc"
        assert upload.mime_type == "application/octet-stream"


class TestDownload:

    def test_attachment_response(self, app, store, xlsx_bytes):
        stored = store.save_sync(xlsx_bytes, "quote.xlsx", XLSX_MIME, "proj-123")

        @app.route("/download/<handle>")
        def download(handle):
            return build_download_response(store.retrieve_sync(handle), "quote.xlsx", XLSX_MIME)

        response = app.test_client().get(f"/download/{stored.handle}")

        assert response.status_code == 200
        assert response.data == xlsx_bytes
        assert response.mimetype == XLSX_MIME
        assert "attachment" in response.headers["Content-Disposition"]
        assert "quote.xlsx" in response.headers["Content-Disposition"]
        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_defaults(self, app):
        with app.test_request_context():
            response = build_download_response(b"data", None)
            response.direct_passthrough = False

            assert response.mimetype == "application/octet-stream"
            assert "download" in response.headers["Content-Disposition"]
            assert response.get_data() == b"data"


class TestErrorResponse:

    @pytest.mark.parametrize(
        "error, status",
        [
            (ValidationError("too big", rule="max_size"), 400),
            (NotFoundError("Stored object not found"), 404),
            (DecryptionError("Decryption failed"), 500),
            (EncryptionError("Encryption failed"), 500),
            (ConfigurationError("Encryption secret is not configured"), 503),
            (StorageIOError("Failed to read stored object"), 500),
        ],
    )
    def test_status_mapping(self, app, error, status):
        with app.app_context():
            response, code = error_response(error)

        assert code == status
        assert "error" in response.get_json()

    def test_validation_names_rule(self, app):
        with app.app_context():
            response, _ = error_response(ValidationError("too big", rule="max_size"))

        assert response.get_json() == {"error": "too big", "rule": "max_size"}

    def test_crypto_failure_is_generic(self, app):
        with app.app_context():
            response, _ = error_response(DecryptionError("Decryption failed"))

        assert response.get_json() == {"error": "File unavailable"}
