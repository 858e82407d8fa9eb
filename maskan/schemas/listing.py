"""
Pydantic schemas for listing requests and responses.
Multipart form fields are validated here before any file is stored.
"""

from pydantic import Field, field_validator, model_validator
from typing import Any, List, Optional
from datetime import datetime
from decimal import Decimal
from maskan.models.listing import Listing, ListingPurpose, ListingStatus
from maskan.schemas.common import CamelModel


class ListingFields(CamelModel):
    """
    Every listing attribute, all optional.

    Blank form values are treated as absent so that an empty input never
    overwrites stored data.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    city: Optional[str] = Field(None, min_length=1, max_length=120)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    property_type: Optional[str] = Field(None, min_length=1, max_length=100)
    beds: Optional[int] = Field(None, ge=0)
    baths: Optional[int] = Field(None, ge=0)
    extension: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    country: Optional[str] = Field(None, max_length=120)
    building: Optional[str] = Field(None, max_length=255)
    neighborhood: Optional[str] = Field(None, max_length=255)
    developments: Optional[str] = Field(None, max_length=255)
    property_reference_id: Optional[str] = Field(None, max_length=120)
    landlord_name: Optional[str] = Field(None, max_length=255)
    rera_title_number: Optional[str] = Field(None, max_length=120)
    rera_pre_registration_number: Optional[str] = Field(None, max_length=120)
    broker: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    whatsapp: Optional[str] = Field(None, max_length=50)
    agent_name: Optional[str] = Field(None, max_length=255)
    agent_call_number: Optional[str] = Field(None, max_length=50)
    agent_email: Optional[str] = Field(None, max_length=255)
    agent_whatsapp: Optional[str] = Field(None, max_length=50)
    purpose: Optional[ListingPurpose] = None
    status: Optional[ListingStatus] = None
    amenities: Optional[List[str]] = None

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                key: value.strip() if isinstance(value, str) else value
                for key, value in data.items()
                if not (isinstance(value, str) and not value.strip())
            }
        return data

    @field_validator("purpose", "status", mode="before")
    @classmethod
    def normalize_enum_text(cls, v):
        """Accept 'Sale', 'Off Market', 'off-market' and similar spellings."""
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_").replace(" ", "_")
        return v

    @field_validator("amenities", mode="before")
    @classmethod
    def split_amenities(cls, v):
        """
        Amenities arrive as repeated form fields, a comma-separated string, or
        a JSON list. The result keeps first-seen order without duplicates.
        """
        if v is None:
            return v
        if isinstance(v, str):
            v = [v]

        amenities: List[str] = []
        for item in v:
            for amenity in str(item).split(","):
                amenity = amenity.strip()
                if amenity and amenity not in amenities:
                    amenities.append(amenity)
        return amenities

    def to_model_fields(self) -> dict:
        """Attributes that were provided, keyed by model column name."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class ListingCreate(ListingFields):
    """Fields required when a listing is created."""

    title: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    city: str = Field(..., min_length=1, max_length=120)
    location: str = Field(..., min_length=1, max_length=255)
    property_type: str = Field(..., min_length=1, max_length=100)
    beds: int = Field(..., ge=0)
    purpose: ListingPurpose = ListingPurpose.SALE
    status: ListingStatus = ListingStatus.AVAILABLE
    amenities: List[str] = Field(default_factory=list)

    def to_model_fields(self) -> dict:
        return self.model_dump(exclude_none=True)


class ListingUpdate(ListingFields):
    """Partial listing update; only provided fields change."""


class ListingResponse(CamelModel):
    """Listing as returned to clients."""

    id: str
    title: str
    price: float
    city: str
    location: str
    country: Optional[str] = None
    property_type: str
    beds: int
    baths: Optional[int] = None
    extension: Optional[str] = None
    description: Optional[str] = None
    property_reference_id: Optional[str] = None
    building: Optional[str] = None
    neighborhood: Optional[str] = None
    developments: Optional[str] = None
    landlord_name: Optional[str] = None
    rera_title_number: Optional[str] = None
    rera_pre_registration_number: Optional[str] = None
    broker: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    whatsapp: Optional[str] = None
    agent_name: Optional[str] = None
    agent_call_number: Optional[str] = None
    agent_email: Optional[str] = None
    agent_whatsapp: Optional[str] = None
    purpose: ListingPurpose
    status: ListingStatus
    amenities: List[str] = Field(default_factory=list)
    image: Optional[str] = Field(None, description="Primary image, always the first of images")
    images: List[str] = Field(default_factory=list)
    pdf: Optional[str] = Field(None, description="Attached document URL")
    user: str = Field(..., description="Owner's user id")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_listing(cls, listing: Listing) -> "ListingResponse":
        return cls(
            id=str(listing.id),
            title=listing.title,
            price=float(listing.price),
            city=listing.city,
            location=listing.location,
            country=listing.country,
            property_type=listing.property_type,
            beds=listing.beds,
            baths=listing.baths,
            extension=listing.extension,
            description=listing.description,
            property_reference_id=listing.property_reference_id,
            building=listing.building,
            neighborhood=listing.neighborhood,
            developments=listing.developments,
            landlord_name=listing.landlord_name,
            rera_title_number=listing.rera_title_number,
            rera_pre_registration_number=listing.rera_pre_registration_number,
            broker=listing.broker,
            phone=listing.phone,
            email=listing.email,
            whatsapp=listing.whatsapp,
            agent_name=listing.agent_name,
            agent_call_number=listing.agent_call_number,
            agent_email=listing.agent_email,
            agent_whatsapp=listing.agent_whatsapp,
            purpose=listing.purpose,
            status=listing.status,
            amenities=list(listing.amenities or []),
            image=listing.primary_image_url,
            images=listing.image_urls,
            pdf=listing.document_url,
            user=str(listing.owner_id),
            created_at=listing.created_at,
            updated_at=listing.updated_at,
        )


class ListingDeleteResponse(CamelModel):
    message: str
    listing: ListingResponse
