"""
Listing model for sale and rent property records.
Handles listing data, contact details, amenities and the ordered image set.
"""

from sqlalchemy import String, Text, Integer, Numeric, JSON, Enum as SQLEnum, Index, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from maskan.database import Base
from decimal import Decimal
import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from maskan.models.user import User
    from maskan.models.listing_image import ListingImage


class ListingPurpose(str, enum.Enum):
    """Whether the listing is offered for sale or for rent."""
    SALE = "sale"
    RENT = "rent"


class ListingStatus(str, enum.Enum):
    """Market status of a listing."""
    AVAILABLE = "available"
    SOLD = "sold"
    RENTED = "rented"
    RESERVED = "reserved"
    OFF_MARKET = "off_market"


class Listing(Base):
    """
    Listing model for managing sale and rent property records.
    The owner is fixed at creation; images keep their display order.
    """

    __tablename__ = "listings"

    # Basic listing information
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Listing title"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )

    property_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Apartment, villa, townhouse, office..."
    )

    purpose: Mapped[ListingPurpose] = mapped_column(
        SQLEnum(ListingPurpose),
        nullable=False,
        default=ListingPurpose.SALE,
        index=True
    )

    status: Mapped[ListingStatus] = mapped_column(
        SQLEnum(ListingStatus),
        nullable=False,
        default=ListingStatus.AVAILABLE,
        index=True
    )

    # Pricing information
    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=2),
        nullable=False,
        index=True,
        comment="Asking price in local currency"
    )

    # Property specifications
    beds: Mapped[int] = mapped_column(
        Integer,
        nullable=False
    )

    baths: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True
    )

    extension: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Built-up area or plot extension as entered by the owner"
    )

    amenities: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list
    )

    # Location information
    city: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        index=True
    )

    location: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True
    )

    country: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    building: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    neighborhood: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    developments: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Registry references
    property_reference_id: Mapped[Optional[str]] = mapped_column(String(120), nullable=True, index=True)
    landlord_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    rera_title_number: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    rera_pre_registration_number: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    # Broker contact
    broker: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    whatsapp: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Agent contact
    agent_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    agent_call_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    agent_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    agent_whatsapp: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Attached document (brochure, title deed...)
    document_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    document_storage_key: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # Foreign key to the owning user
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the user who created this listing"
    )

    # Relationships
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="listings",
        lazy="raise"
    )

    images: Mapped[List["ListingImage"]] = relationship(
        "ListingImage",
        back_populates="listing",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ListingImage.position"
    )

    def __repr__(self) -> str:
        """String representation of the listing."""
        return f"<Listing(id={self.id}, title={self.title[:30]}..., price={self.price})>"

    @property
    def image_urls(self) -> List[str]:
        """Image URLs in display order."""
        return [image.url for image in self.images]

    @property
    def primary_image_url(self) -> Optional[str]:
        """The first image is the primary one."""
        return self.images[0].url if self.images else None

    def is_owned_by(self, user_id: uuid.UUID) -> bool:
        return self.owner_id == user_id

    def storage_keys(self) -> List[str]:
        """Every blob key referenced by this listing."""
        keys = [image.storage_key for image in self.images if image.storage_key]
        if self.document_storage_key:
            keys.append(self.document_storage_key)
        return keys


# City/location filtering is the public search path
city_location_index = Index(
    'idx_listings_city_location',
    Listing.city,
    Listing.location
)

owner_created_index = Index(
    'idx_listings_owner_created',
    Listing.owner_id,
    Listing.created_at
)
