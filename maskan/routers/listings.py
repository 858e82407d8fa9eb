"""
Listing API endpoints.
Public reads; create, update and delete require a bearer token and ownership.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from maskan.models.listing import Listing
from maskan.models.user import User
from maskan.schemas.error import COMMON_ERROR_RESPONSES
from maskan.schemas.listing import (
    ListingCreate,
    ListingUpdate,
    ListingResponse,
    ListingDeleteResponse,
)
from maskan.services.listing import ListingService
from maskan.services.uploads import UploadPipeline
from maskan.utils.dependencies import (
    get_current_user,
    get_listing_service,
    get_owned_listing,
    get_upload_pipeline,
)
from maskan.utils.forms import form_fields, form_files


router = APIRouter(tags=["Listings"])

IMAGE_FIELD = "images"
DOCUMENT_FIELD = "pdf"
IMAGE_MODE_FIELD = "imageMode"

MULTIPART_BODY = {
    "requestBody": {
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        IMAGE_FIELD: {"type": "array", "items": {"type": "string", "format": "binary"}},
                        DOCUMENT_FIELD: {"type": "string", "format": "binary"},
                        IMAGE_MODE_FIELD: {"type": "string", "enum": ["replace", "append"]},
                        "title": {"type": "string"},
                        "price": {"type": "number"},
                        "city": {"type": "string"},
                        "location": {"type": "string"},
                        "propertyType": {"type": "string"},
                        "beds": {"type": "integer"},
                        "amenities": {"type": "array", "items": {"type": "string"}},
                    },
                }
            }
        }
    }
}


@router.get(
    "/listings",
    response_model=List[ListingResponse],
    summary="List listings",
    description="Filter by exact city and location; returns an empty list when nothing matches"
)
async def list_listings(
    city: Optional[str] = Query(None, description="Exact city"),
    location: Optional[str] = Query(None, description="Exact location"),
    listing_service: ListingService = Depends(get_listing_service)
) -> List[ListingResponse]:
    listings = await listing_service.list_listings(city=city, location=location)
    return [ListingResponse.from_listing(listing) for listing in listings]


@router.get(
    "/user-listings",
    response_model=List[ListingResponse],
    summary="Listings of the current user",
    responses={401: COMMON_ERROR_RESPONSES[401]}
)
async def list_user_listings(
    current_user: User = Depends(get_current_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> List[ListingResponse]:
    listings = await listing_service.list_for_owner(current_user)
    return [ListingResponse.from_listing(listing) for listing in listings]


@router.get(
    "/listings/{listing_id}",
    response_model=ListingResponse,
    summary="Get a listing",
    responses={404: COMMON_ERROR_RESPONSES[404]}
)
async def get_listing(
    listing_id: str,
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.get_listing(listing_id)
    return ListingResponse.from_listing(listing)


@router.post(
    "/listings",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a listing",
    description="Multipart form with listing fields, up to 10 `images` and one optional `pdf`. "
                "Nothing is saved unless every file is stored.",
    openapi_extra=MULTIPART_BODY,
    responses={
        400: COMMON_ERROR_RESPONSES[400],
        401: COMMON_ERROR_RESPONSES[401],
        502: COMMON_ERROR_RESPONSES[502],
        504: COMMON_ERROR_RESPONSES[504],
    }
)
async def create_listing(
    request: Request,
    current_user: User = Depends(get_current_user),
    listing_service: ListingService = Depends(get_listing_service),
    uploads: UploadPipeline = Depends(get_upload_pipeline)
) -> ListingResponse:
    async with request.form(max_files=uploads.max_listing_images + 1) as form:
        data = ListingCreate.model_validate(
            form_fields(form, exclude=(IMAGE_FIELD, DOCUMENT_FIELD), list_fields=("amenities",))
        )
        images = await uploads.read_parts(IMAGE_FIELD, form_files(form, IMAGE_FIELD))
        documents = await uploads.read_parts(DOCUMENT_FIELD, form_files(form, DOCUMENT_FIELD))

    listing = await listing_service.create_listing(current_user, data, images, documents)
    return ListingResponse.from_listing(listing)


@router.put(
    "/listings/{listing_id}",
    response_model=ListingResponse,
    summary="Update a listing",
    description="Multipart form with the fields to change. New `images` replace the current set "
                "unless `imageMode` is `append`; a new `pdf` replaces the current one.",
    openapi_extra=MULTIPART_BODY,
    responses={
        400: COMMON_ERROR_RESPONSES[400],
        401: COMMON_ERROR_RESPONSES[401],
        403: COMMON_ERROR_RESPONSES[403],
        404: COMMON_ERROR_RESPONSES[404],
        502: COMMON_ERROR_RESPONSES[502],
        504: COMMON_ERROR_RESPONSES[504],
    }
)
async def update_listing(
    request: Request,
    owned: Listing = Depends(get_owned_listing),
    current_user: User = Depends(get_current_user),
    listing_service: ListingService = Depends(get_listing_service),
    uploads: UploadPipeline = Depends(get_upload_pipeline)
) -> ListingResponse:
    async with request.form(max_files=uploads.max_listing_images + 1) as form:
        image_mode = form.get(IMAGE_MODE_FIELD)
        data = ListingUpdate.model_validate(
            form_fields(
                form,
                exclude=(IMAGE_FIELD, DOCUMENT_FIELD, IMAGE_MODE_FIELD),
                list_fields=("amenities",)
            )
        )
        images = await uploads.read_parts(IMAGE_FIELD, form_files(form, IMAGE_FIELD))
        documents = await uploads.read_parts(DOCUMENT_FIELD, form_files(form, DOCUMENT_FIELD))

    listing = await listing_service.update_listing(
        str(owned.id),
        current_user,
        data,
        images,
        documents,
        image_mode=image_mode if isinstance(image_mode, str) else "replace"
    )
    return ListingResponse.from_listing(listing)


@router.delete(
    "/listings/{listing_id}",
    response_model=ListingDeleteResponse,
    summary="Delete a listing",
    responses={
        401: COMMON_ERROR_RESPONSES[401],
        403: COMMON_ERROR_RESPONSES[403],
        404: COMMON_ERROR_RESPONSES[404],
    }
)
async def delete_listing(
    listing_id: str,
    current_user: User = Depends(get_current_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingDeleteResponse:
    snapshot = await listing_service.delete_listing(listing_id, current_user)
    return ListingDeleteResponse(message="Listing deleted successfully", listing=snapshot)
