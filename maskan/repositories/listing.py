"""
Listing repository for listing persistence and queries.
Creation and deletion keep the owner's listing index consistent in one transaction.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from maskan.repositories.base import BaseRepository
from maskan.models.listing import Listing
from maskan.models.listing_image import ListingImage
from maskan.models.user import User
from maskan.storage import StoredBlob
from typing import Any, Dict, List, Optional, Sequence
import uuid
import logging

logger = logging.getLogger(__name__)


def build_images(blobs: Sequence[StoredBlob], start: int = 0) -> List[ListingImage]:
    """Image rows for stored blobs, positioned in upload order."""
    return [
        ListingImage(url=blob.url, storage_key=blob.key, position=start + offset)
        for offset, blob in enumerate(blobs)
    ]


class ListingRepository(BaseRepository[Listing]):
    """
    Repository for listings.

    The owner's listing index is ``Listing.owner_id`` (indexed, foreign key to
    ``users.id``), so it can never point at a missing listing. ``User.listings``
    is never loaded implicitly; owner queries go through ``list_for_owner``.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Listing, db)

    async def create_for_owner(
        self,
        owner: User,
        fields: Dict[str, Any],
        images: Sequence[StoredBlob],
        document: Optional[StoredBlob] = None,
    ) -> Listing:
        """
        Insert a listing with its images and link it to its owner.

        The listing row, the image rows and the owner link are committed
        together; a failure leaves none of them behind.

        Args:
            owner: Authenticated user creating the listing
            fields: Validated listing attributes
            images: Stored images, in display order
            document: Stored PDF, if any

        Returns:
            Created listing
        """
        listing = Listing(**fields)
        listing.owner_id = owner.id
        listing.images = build_images(images)
        if document is not None:
            listing.document_url = document.url
            listing.document_storage_key = document.key

        created = await self.add(listing)
        logger.info(f"Created listing {created.id} for owner {owner.id} with {len(images)} image(s)")
        return created

    async def get_listing(self, listing_id: uuid.UUID) -> Optional[Listing]:
        return await self.get_by_id(listing_id)

    async def list_listings(self, city: Optional[str] = None, location: Optional[str] = None) -> List[Listing]:
        """
        Listings matching optional city and location equality filters.

        Ordered by creation time then id, so repeated reads without writes in
        between return identical results.
        """
        return await self.get_multi({"city": city, "location": location})

    async def list_for_owner(self, owner_id: uuid.UUID) -> List[Listing]:
        result = await self.db.execute(
            select(Listing)
            .where(Listing.owner_id == owner_id)
            .order_by(Listing.created_at, Listing.id)
        )
        return list(result.scalars().all())

    async def update_listing(
        self,
        listing: Listing,
        fields: Dict[str, Any],
        images: Sequence[StoredBlob] = (),
        document: Optional[StoredBlob] = None,
        replace_images: bool = True,
    ) -> List[str]:
        """
        Apply field changes and new uploads to a listing and commit.

        Args:
            listing: Listing already checked for ownership
            fields: Attributes to overwrite; ``owner_id`` is ignored
            images: Newly stored images, in display order
            document: Newly stored PDF replacing the current one
            replace_images: Swap the image set instead of appending to it

        Returns:
            Storage keys no longer referenced after the commit
        """
        orphaned: List[str] = []

        for field, value in fields.items():
            if field in ("id", "owner_id", "created_at", "updated_at"):
                continue
            setattr(listing, field, value)

        if images:
            if replace_images:
                orphaned.extend(image.storage_key for image in listing.images)
                listing.images = build_images(images)
            else:
                listing.images.extend(build_images(images, start=len(listing.images)))

        if document is not None:
            if listing.document_storage_key:
                orphaned.append(listing.document_storage_key)
            listing.document_url = document.url
            listing.document_storage_key = document.key

        await self.save(listing)
        logger.info(f"Updated listing {listing.id}")
        return orphaned

    async def delete_listing(self, listing: Listing) -> List[str]:
        """
        Delete a listing, its images and its entry in the owner's index.

        Returns:
            Storage keys that were referenced by the deleted listing
        """
        keys = listing.storage_keys()

        await self.remove(listing)
        logger.info(f"Deleted listing {listing.id}")
        return keys
