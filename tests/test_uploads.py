"""
Tests for the upload pipeline, upload batches and the local blob store.
"""

import pytest
from datetime import datetime, timezone

from maskan.services.uploads import (
    IncomingFile,
    UploadPipeline,
    build_storage_key,
    delete_blobs,
    sanitize_filename,
)
from maskan.storage import LocalBlobStore
from maskan.utils.exceptions import StorageError, UploadRejectedError, UpstreamFailureError
from tests.conftest import MemoryBlobStore, PDF_BYTES, image_bytes, pdf_file, png_file


@pytest.fixture
def store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def pipeline(store: MemoryBlobStore, settings) -> UploadPipeline:
    return UploadPipeline(store, settings)


class TestStorageKeys:
    """Test blob key construction."""

    def test_key_layout(self):
        now = datetime(2024, 5, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)

        key = build_storage_key("listings", "My Flat.PNG", now=now)

        folder, name = key.split("/", 1)
        assert folder == "listings"
        assert name.startswith("20240501T123045123456Z-")
        assert name.endswith("-My_Flat.PNG")

    def test_same_name_same_instant_gives_distinct_keys(self):
        now = datetime.now(timezone.utc)

        keys = {build_storage_key("listings", "a.png", now=now) for _ in range(50)}

        assert len(keys) == 50

    def test_sanitize_filename_strips_paths(self):
        assert sanitize_filename("../../etc/passwd") == "passwd"
        assert sanitize_filename("") == "upload"
        assert sanitize_filename(None) == "upload"


class TestValidation:
    """Test per-part validation."""

    def test_valid_png_passes(self, pipeline: UploadPipeline):
        pipeline.validate_image(png_file())

    def test_valid_jpeg_passes(self, pipeline: UploadPipeline):
        pipeline.validate_image(
            IncomingFile("images", "photo.jpg", "image/jpeg", image_bytes("JPEG"))
        )

    def test_disallowed_type_rejected(self, pipeline: UploadPipeline):
        with pytest.raises(UploadRejectedError) as exc_info:
            pipeline.validate_image(IncomingFile("images", "x.bmp", "image/bmp", image_bytes("BMP")))
        assert exc_info.value.status_code == 400

    def test_bytes_that_are_not_an_image_rejected(self, pipeline: UploadPipeline):
        with pytest.raises(UploadRejectedError, match="not a valid image"):
            pipeline.validate_image(IncomingFile("images", "x.png", "image/png", b"plain text"))

    def test_declared_type_must_match_content(self, pipeline: UploadPipeline):
        # BMP bytes declared as PNG
        with pytest.raises(UploadRejectedError):
            pipeline.validate_image(IncomingFile("images", "x.png", "image/png", image_bytes("BMP")))

    def test_empty_file_rejected(self, pipeline: UploadPipeline):
        with pytest.raises(UploadRejectedError, match="empty"):
            pipeline.validate_image(IncomingFile("images", "x.png", "image/png", b""))

    def test_oversize_file_rejected(self, store, tmp_path):
        from tests.conftest import make_settings
        small = UploadPipeline(store, make_settings(tmp_path, max_file_size=64))

        with pytest.raises(UploadRejectedError, match="exceeds"):
            small.validate_image(IncomingFile("images", "big.png", "image/png", b"x" * 65))

    def test_pdf_magic_checked(self, pipeline: UploadPipeline):
        pipeline.validate_document(pdf_file())
        with pytest.raises(UploadRejectedError, match="not a PDF"):
            pipeline.validate_document(IncomingFile("pdf", "x.pdf", "application/pdf", b"hello"))

    def test_image_or_document(self, pipeline: UploadPipeline):
        pipeline.validate_image_or_document(pdf_file(field="reraIDCard"))
        pipeline.validate_image_or_document(png_file(field="reraIDCard"))
        with pytest.raises(UploadRejectedError):
            pipeline.validate_image_or_document(
                IncomingFile("reraIDCard", "x.txt", "text/plain", b"hello")
            )

    def test_listing_limits(self, pipeline: UploadPipeline):
        pipeline.validate_listing_files([png_file() for _ in range(10)], [pdf_file()])

        with pytest.raises(UploadRejectedError, match="At most 10"):
            pipeline.validate_listing_files([png_file() for _ in range(11)], [])
        with pytest.raises(UploadRejectedError, match="one PDF"):
            pipeline.validate_listing_files([png_file()], [pdf_file(), pdf_file()])


class TestUploadBatch:
    """Test concurrent uploads and compensation."""

    async def test_upload_keeps_input_order(self, pipeline: UploadPipeline, store: MemoryBlobStore):
        files = [png_file(f"p{index}.png") for index in range(5)]

        stored = await pipeline.batch().upload(files, "listings")

        assert [blob.key.rsplit("-", 1)[-1] for blob in stored] == [f"p{index}.png" for index in range(5)]
        assert len(store.blobs) == 5

    async def test_partial_failure_discards_stored_blobs(self, settings):
        store = MemoryBlobStore(fail_on="p3.png")
        batch = UploadPipeline(store, settings).batch()

        with pytest.raises(UpstreamFailureError):
            await batch.upload([png_file(f"p{index}.png") for index in range(5)], "listings")

        assert store.blobs == {}
        assert len(store.deleted) == 4
        assert batch.stored == []

    async def test_discard_removes_everything(self, pipeline: UploadPipeline, store: MemoryBlobStore):
        batch = pipeline.batch()
        await batch.upload([png_file(), pdf_file()], "listings")

        await batch.discard()

        assert store.blobs == {}

    async def test_empty_upload_is_noop(self, pipeline: UploadPipeline, store: MemoryBlobStore):
        assert await pipeline.batch().upload([], "listings") == []
        assert store.blobs == {}


async def test_delete_blobs_is_best_effort():
    store = MemoryBlobStore(fail_deletes=True)

    await delete_blobs(store, ["a", "b"])


class TestLocalBlobStore:
    """Test the disk-backed blob store."""

    async def test_put_and_delete(self, tmp_path):
        store = LocalBlobStore(tmp_path / "blobs", "http://cdn.test/uploads/")

        blob = await store.put("listings/a.png", b"data", "image/png")

        assert blob.url == "http://cdn.test/uploads/listings/a.png"
        assert (tmp_path / "blobs" / "listings" / "a.png").read_bytes() == b"data"

        await store.delete(blob.key)
        assert not (tmp_path / "blobs" / "listings" / "a.png").exists()

        # Deleting twice is fine
        await store.delete(blob.key)

    async def test_key_cannot_escape_directory(self, tmp_path):
        store = LocalBlobStore(tmp_path / "blobs", "http://cdn.test")

        with pytest.raises(StorageError):
            await store.put("../outside.png", b"data", "image/png")


class TestReadParts:
    """Test reading multipart parts into memory."""

    async def test_oversize_part_rejected_while_reading(self, store, tmp_path):
        from io import BytesIO
        from starlette.datastructures import Headers, UploadFile
        from tests.conftest import make_settings

        pipeline = UploadPipeline(store, make_settings(tmp_path, max_file_size=10))
        part = UploadFile(
            file=BytesIO(b"x" * 11),
            filename="big.pdf",
            headers=Headers({"content-type": "application/pdf"}),
        )

        with pytest.raises(UploadRejectedError, match="exceeds"):
            await pipeline.read_parts("pdf", [part])

    async def test_parts_read_with_normalized_type(self, pipeline: UploadPipeline):
        from io import BytesIO
        from starlette.datastructures import Headers, UploadFile

        part = UploadFile(
            file=BytesIO(PDF_BYTES),
            filename="doc.pdf",
            headers=Headers({"content-type": "Application/PDF; charset=binary"}),
        )

        files = await pipeline.read_parts("pdf", [part])

        assert files[0].content_type == "application/pdf"
        assert files[0].data == PDF_BYTES
        assert files[0].field == "pdf"
