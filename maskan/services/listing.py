"""
Listing service for listing CRUD with ownership enforcement.
Uploads finish before any listing write, all under one request deadline.
"""

from typing import List, Optional, Sequence, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from maskan.config import Settings
from maskan.models.listing import Listing
from maskan.models.user import User
from maskan.repositories.listing import ListingRepository
from maskan.schemas.listing import ListingCreate, ListingResponse, ListingUpdate
from maskan.services.uploads import IncomingFile, UploadBatch, UploadPipeline, delete_blobs
from maskan.storage import StoredBlob
from maskan.utils.exceptions import (
    ListingNotFoundError,
    ListingOwnershipError,
    RequestTimeoutError,
    UploadRejectedError,
    ValidationError,
)
import asyncio
import uuid
import logging

logger = logging.getLogger(__name__)

IMAGE_MODES = ("replace", "append")
LISTING_FOLDER = "listings"


class ListingService:
    """
    Listing CRUD on top of the listing repository and the upload pipeline.

    Every mutation checks ownership first. Concurrent updates of one listing
    are not serialized; the last commit wins.
    """

    def __init__(self, db_session: AsyncSession, settings: Settings, uploads: UploadPipeline):
        self.db = db_session
        self.uploads = uploads
        self.timeout = settings.request_timeout_seconds
        self.listing_repo = ListingRepository(db_session)

    async def get_listing(self, listing_id: str) -> Listing:
        """
        Get a listing by id.

        Raises:
            ListingNotFoundError: If the id is malformed or unknown
        """
        try:
            parsed_id = uuid.UUID(str(listing_id))
        except ValueError:
            raise ListingNotFoundError(str(listing_id))

        listing = await self.listing_repo.get_listing(parsed_id)
        if listing is None:
            raise ListingNotFoundError(str(listing_id))
        return listing

    async def list_listings(self, city: Optional[str] = None, location: Optional[str] = None) -> List[Listing]:
        return await self.listing_repo.list_listings(city=city or None, location=location or None)

    async def list_for_owner(self, owner: User) -> List[Listing]:
        return await self.listing_repo.list_for_owner(owner.id)

    @staticmethod
    def _ensure_owner(listing: Listing, caller: User) -> None:
        if not listing.is_owned_by(caller.id):
            logger.warning(f"User {caller.id} attempted to modify listing {listing.id} owned by {listing.owner_id}")
            raise ListingOwnershipError()

    async def get_owned_listing(self, listing_id: str, caller: User) -> Listing:
        """
        Get a listing and check that ``caller`` owns it.

        Raises:
            ListingNotFoundError: If the listing does not exist
            ListingOwnershipError: If ``caller`` is not the owner
        """
        listing = await self.get_owned_listing(listing_id, caller)
        return listing

    async def _write_or_discard(self, write, stored: List[StoredBlob], batch: UploadBatch):
        try:
            return await write(stored)
        except Exception:
            await batch.discard()
            raise

    async def _upload_then_write(self, files: Sequence[IncomingFile], write, batch: UploadBatch):
        """
        Upload ``files``, then pass the stored blobs to ``write``, within the request deadline.

        Expiry during the uploads cancels them, rolls the session back and
        deletes every blob the batch stored. Once the write has started it is
        shielded and allowed to finish, since it may already have committed.
        """
        write_task: Optional["asyncio.Future"] = None

        async def run():
            nonlocal write_task
            stored = await batch.upload(files, LISTING_FOLDER)
            write_task = asyncio.ensure_future(self._write_or_discard(write, stored, batch))
            return await asyncio.shield(write_task)

        try:
            return await asyncio.wait_for(run(), timeout=self.timeout)
        except asyncio.TimeoutError:
            if write_task is not None:
                logger.warning(f"Listing operation exceeded {self.timeout}s during the database write; letting it finish")
                return await write_task
            logger.error(f"Listing operation exceeded {self.timeout}s; discarding {len(batch.stored)} stored blob(s)")
            await self.db.rollback()
            await batch.discard()
            raise RequestTimeoutError()

    @staticmethod
    def _split(stored: Sequence[StoredBlob], image_count: int) -> Tuple[List[StoredBlob], Optional[StoredBlob]]:
        images = list(stored[:image_count])
        document = stored[image_count] if len(stored) > image_count else None
        return images, document

    async def create_listing(
        self,
        owner: User,
        data: ListingCreate,
        images: Sequence[IncomingFile],
        documents: Sequence[IncomingFile] = (),
    ) -> Listing:
        """
        Create a listing owned by ``owner``.

        All files are validated, then uploaded; only when every upload has
        succeeded is the listing written. A failed write discards the blobs.

        Raises:
            UploadRejectedError: If a file is invalid or no image was sent
            UpstreamFailureError: If the blob store fails
            RequestTimeoutError: If the request deadline elapses
        """
        if not images:
            raise UploadRejectedError("At least one image is required", field="images")
        self.uploads.validate_listing_files(images, documents)

        batch = self.uploads.batch()

        async def create(stored: List[StoredBlob]) -> Listing:
            stored_images, document = self._split(stored, len(images))
            return await self.listing_repo.create_for_owner(
                owner, data.to_model_fields(), stored_images, document
            )

        return await self._upload_then_write([*images, *documents], create, batch)

    async def update_listing(
        self,
        listing_id: str,
        caller: User,
        data: ListingUpdate,
        images: Sequence[IncomingFile] = (),
        documents: Sequence[IncomingFile] = (),
        image_mode: str = "replace",
    ) -> Listing:
        """
        Update a listing owned by ``caller``.

        New images replace the current set in ``replace`` mode and are added
        after it in ``append`` mode. A new PDF replaces the current one.
        Blobs that are no longer referenced are deleted after the commit.

        Raises:
            ListingNotFoundError: If the listing does not exist
            ListingOwnershipError: If ``caller`` is not the owner
            ValidationError: If ``image_mode`` is unknown
            UploadRejectedError: If a file is invalid or the image cap is exceeded
        """
        listing = await self.get_owned_listing(listing_id, caller)

        image_mode = (image_mode or "replace").strip().lower()
        if image_mode not in IMAGE_MODES:
            raise ValidationError.for_field("imageMode", f"imageMode must be one of: {', '.join(IMAGE_MODES)}")

        self.uploads.validate_listing_files(images, documents)
        if image_mode == "append" and len(listing.images) + len(images) > self.uploads.max_listing_images:
            raise UploadRejectedError(
                f"A listing can have at most {self.uploads.max_listing_images} images", field="images"
            )

        batch = self.uploads.batch()

        async def update(stored: List[StoredBlob]) -> List[str]:
            stored_images, document = self._split(stored, len(images))
            return await self.listing_repo.update_listing(
                listing,
                data.to_model_fields(),
                stored_images,
                document,
                replace_images=image_mode == "replace",
            )

        orphaned = await self._upload_then_write([*images, *documents], update, batch)
        if orphaned:
            await delete_blobs(self.uploads.store, orphaned)
        return listing

    async def delete_listing(self, listing_id: str, caller: User) -> ListingResponse:
        """
        Delete a listing owned by ``caller``.

        Returns:
            Snapshot of the listing as it was before deletion

        Raises:
            ListingNotFoundError: If the listing does not exist
            ListingOwnershipError: If ``caller`` is not the owner
        """
        listing = await self.get_owned_listing(listing_id, caller)

        snapshot = ListingResponse.from_listing(listing)
        keys = await self.listing_repo.delete_listing(listing)
        if keys:
            await delete_blobs(self.uploads.store, keys)
        return snapshot
