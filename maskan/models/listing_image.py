"""
ListingImage model for uploaded listing photos.
Stores the public URL, the blob key used to delete it, and the display position.
"""

from sqlalchemy import String, Integer, ForeignKey, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from maskan.database import Base
import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from maskan.models.listing import Listing


class ListingImage(Base):
    """
    One stored image of a listing.
    Position 0 is the primary image.
    """

    __tablename__ = "listing_images"

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the listing this image belongs to"
    )

    url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Public URL returned by the blob store"
    )

    storage_key: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        comment="Blob store key, used for deletion"
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Display order, 0 is the primary image"
    )

    listing: Mapped["Listing"] = relationship(
        "Listing",
        back_populates="images"
    )

    def __repr__(self) -> str:
        return f"<ListingImage(id={self.id}, listing_id={self.listing_id}, position={self.position})>"


listing_images_position_index = Index(
    'idx_listing_images_listing_position',
    ListingImage.listing_id,
    ListingImage.position
)
