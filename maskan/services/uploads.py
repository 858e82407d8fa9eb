"""
Upload pipeline: validates multipart file parts and stores them in the blob store.
Every part is checked before the first storage call; a failed batch is rolled back.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Sequence, Set
import asyncio
import logging
import re
import uuid

from starlette.datastructures import UploadFile
from PIL import Image

from maskan.config import Settings
from maskan.storage import BlobStore, StoredBlob
from maskan.utils.exceptions import StorageError, UploadRejectedError, UpstreamFailureError

logger = logging.getLogger(__name__)

# Pillow format name -> MIME type
IMAGE_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class IncomingFile:
    """A multipart file part read into memory."""
    field: str
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def sanitize_filename(filename: Optional[str]) -> str:
    name = Path(filename or "").name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name[-100:] or "upload"


def build_storage_key(folder: str, filename: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Collision-resistant key: ``<folder>/<UTC timestamp>-<random hex>-<filename>``.

    The random suffix keeps identical filenames uploaded in the same
    millisecond apart.
    """
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%S%fZ")
    return f"{folder}/{stamp}-{uuid.uuid4().hex[:12]}-{sanitize_filename(filename)}"


class UploadPipeline:
    """
    Validation rules and blob store access for one application.

    Validation is synchronous and side-effect free; storing goes through an
    ``UploadBatch`` so the blobs of a single request can be undone together.
    """

    def __init__(self, store: BlobStore, settings: Settings):
        self.store = store
        self.max_file_size = settings.max_file_size
        self.max_listing_images = settings.max_listing_images
        self.image_types = list(settings.allowed_image_types)
        self.document_types = list(settings.allowed_document_types)

    async def read_parts(self, field: str, parts: Sequence[UploadFile]) -> List[IncomingFile]:
        """
        Read uploaded parts into memory, rejecting oversize parts early.

        At most ``max_file_size + 1`` bytes are read from each part, so an
        oversize part is refused without loading all of it into memory.
        """
        files = []
        for part in parts:
            data = await part.read(self.max_file_size + 1)
            await part.close()
            if len(data) > self.max_file_size:
                max_mb = self.max_file_size / (1024 * 1024)
                raise UploadRejectedError(
                    f"'{part.filename}' exceeds the {max_mb:.0f}MB limit", field=field
                )
            files.append(IncomingFile(
                field=field,
                filename=part.filename or "upload",
                content_type=(part.content_type or "").split(";")[0].strip().lower(),
                data=data,
            ))
        return files

    def _check_common(self, file: IncomingFile) -> None:
        if file.size == 0:
            raise UploadRejectedError(f"'{file.filename}' is empty", field=file.field)
        if file.size > self.max_file_size:
            max_mb = self.max_file_size / (1024 * 1024)
            raise UploadRejectedError(
                f"'{file.filename}' exceeds the {max_mb:.0f}MB limit", field=file.field
            )

    def validate_image(self, file: IncomingFile) -> None:
        """
        Validate one image part.

        Raises:
            UploadRejectedError: If the type is not an allowed image type, the
                part is empty or too large, or Pillow cannot read the bytes
        """
        if file.content_type not in self.image_types:
            raise UploadRejectedError(
                f"'{file.filename}' has type '{file.content_type}'; "
                f"allowed types: {', '.join(self.image_types)}",
                field=file.field,
            )
        self._check_common(file)

        try:
            with Image.open(BytesIO(file.data)) as img:
                pil_format = img.format
                img.verify()
        except Exception as e:
            raise UploadRejectedError(f"'{file.filename}' is not a valid image", field=file.field) from e

        if IMAGE_FORMATS.get(pil_format or "") not in self.image_types:
            raise UploadRejectedError(
                f"'{file.filename}' is a {pil_format} image, which is not accepted",
                field=file.field,
            )

    def validate_document(self, file: IncomingFile) -> None:
        if file.content_type not in self.document_types:
            raise UploadRejectedError(
                f"'{file.filename}' has type '{file.content_type}'; "
                f"allowed types: {', '.join(self.document_types)}",
                field=file.field,
            )
        self._check_common(file)
        if file.content_type == "application/pdf" and not file.data.startswith(b"%PDF"):
            raise UploadRejectedError(f"'{file.filename}' is not a PDF document", field=file.field)

    def validate_image_or_document(self, file: IncomingFile) -> None:
        if file.content_type in self.document_types:
            self.validate_document(file)
        else:
            self.validate_image(file)

    def validate_listing_files(
        self,
        images: Sequence[IncomingFile],
        documents: Sequence[IncomingFile],
    ) -> None:
        """
        Validate the whole listing upload before anything is stored.

        Raises:
            UploadRejectedError: On too many parts or any invalid part
        """
        if len(images) > self.max_listing_images:
            raise UploadRejectedError(
                f"At most {self.max_listing_images} images are allowed per listing", field="images"
            )
        if len(documents) > 1:
            raise UploadRejectedError("Only one PDF document is allowed", field="pdf")

        for image in images:
            self.validate_image(image)
        for document in documents:
            self.validate_document(document)

    def batch(self) -> "UploadBatch":
        return UploadBatch(self.store)


class UploadBatch:
    """
    Blobs stored while serving one request.

    ``upload`` keeps results in input order. If any part fails, the parts that
    did succeed are deleted before the error propagates, so callers never see
    a partial set. ``discard`` undoes everything stored so far, for use when a
    later step (timeout, database commit) fails.

    Each storage call runs as its own shielded task. Cancelling ``upload``
    does not abandon a put whose backend keeps working in a thread; the put
    is recorded when it lands and ``discard`` waits for it before deleting.
    """

    def __init__(self, store: BlobStore):
        self.store = store
        self.stored: List[StoredBlob] = []
        self._pending: Set["asyncio.Future[StoredBlob]"] = set()

    def _record(self, task: "asyncio.Future[StoredBlob]") -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is None:
            self.stored.append(task.result())

    async def _put(self, file: IncomingFile, folder: str) -> StoredBlob:
        key = build_storage_key(folder, file.filename)
        task = asyncio.ensure_future(self.store.put(key, file.data, file.content_type))
        self._pending.add(task)
        task.add_done_callback(self._record)
        return await asyncio.shield(task)

    async def upload(self, files: Sequence[IncomingFile], folder: str) -> List[StoredBlob]:
        """
        Upload files concurrently.

        Raises:
            UpstreamFailureError: If any upload fails; stored blobs are discarded
        """
        if not files:
            return []

        results = await asyncio.gather(
            *(self._put(file, folder) for file in files),
            return_exceptions=True,
        )

        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            logger.error(f"{len(failures)} of {len(files)} uploads to '{folder}' failed: {failures[0]}")
            await self.discard()
            if all(isinstance(failure, StorageError) for failure in failures):
                raise UpstreamFailureError("File upload failed; nothing was saved") from failures[0]
            raise failures[0]

        logger.info(f"Stored {len(results)} file(s) under '{folder}'")
        return list(results)

    async def discard(self) -> None:
        """Delete every blob stored by this batch, once in-flight puts have settled."""
        if self._pending:
            logger.info(f"Waiting for {len(self._pending)} in-flight upload(s) before discarding")
            await asyncio.wait(list(self._pending))
        blobs, self.stored = self.stored, []
        if blobs:
            await delete_blobs(self.store, [blob.key for blob in blobs])


async def delete_blobs(store: BlobStore, keys: Sequence[str]) -> None:
    """
    Best-effort deletion of blobs that are no longer referenced.

    Failures are logged, not raised: the database change that orphaned the
    blobs has already been committed or rolled back.
    """
    results = await asyncio.gather(*(store.delete(key) for key in keys), return_exceptions=True)
    for key, result in zip(keys, results):
        if isinstance(result, Exception):
            logger.warning(f"Could not delete blob {key}: {result}")
