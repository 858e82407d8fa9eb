"""
Agent and broker profile intake endpoints.
"""

from fastapi import APIRouter, Depends, Request, status
from maskan.schemas.error import COMMON_ERROR_RESPONSES
from maskan.schemas.profile import (
    AgentProfileCreate,
    AgentProfileResponse,
    BrokerProfileCreate,
    BrokerProfileResponse,
)
from maskan.services.profile import ProfileService
from maskan.services.uploads import UploadPipeline
from maskan.utils.dependencies import get_profile_service, get_upload_pipeline
from maskan.utils.forms import form_fields, form_files


router = APIRouter(tags=["Profiles"])

PHOTO_FIELD = "profilePhoto"
ID_CARD_FIELD = "reraIDCard"


def _single_file_body(file_field: str, text_fields: list) -> dict:
    properties = {name: {"type": "string"} for name in text_fields}
    properties[file_field] = {"type": "string", "format": "binary"}
    return {
        "requestBody": {
            "content": {"multipart/form-data": {"schema": {"type": "object", "properties": properties}}}
        }
    }


@router.post(
    "/agent-profile",
    response_model=AgentProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an agent profile",
    description="Multipart form with agent contact details and an optional `profilePhoto` image",
    openapi_extra=_single_file_body(
        PHOTO_FIELD, ["agentName", "agentEmail", "contactNumber", "contactWhatsApp"]
    ),
    responses={400: COMMON_ERROR_RESPONSES[400], 502: COMMON_ERROR_RESPONSES[502]}
)
async def create_agent_profile(
    request: Request,
    profile_service: ProfileService = Depends(get_profile_service),
    uploads: UploadPipeline = Depends(get_upload_pipeline)
) -> AgentProfileResponse:
    async with request.form(max_files=2) as form:
        data = AgentProfileCreate.model_validate(form_fields(form, exclude=(PHOTO_FIELD,)))
        photos = await uploads.read_parts(PHOTO_FIELD, form_files(form, PHOTO_FIELD)[:1])

    profile = await profile_service.create_agent_profile(data, photos[0] if photos else None)
    return AgentProfileResponse.from_profile(profile)


@router.get(
    "/agents/{email}",
    response_model=AgentProfileResponse,
    summary="Get an agent profile by email",
    responses={404: COMMON_ERROR_RESPONSES[404]}
)
async def get_agent(
    email: str,
    profile_service: ProfileService = Depends(get_profile_service)
) -> AgentProfileResponse:
    profile = await profile_service.get_agent_by_email(email)
    return AgentProfileResponse.from_profile(profile)


@router.post(
    "/broker-profile",
    response_model=BrokerProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a broker profile",
    description="Multipart form with RERA and company details; the `reraIDCard` image or PDF is required",
    openapi_extra=_single_file_body(
        ID_CARD_FIELD, ["reraBrokerID", "companyLicenseNumber", "companyTelephoneNumber"]
    ),
    responses={400: COMMON_ERROR_RESPONSES[400], 502: COMMON_ERROR_RESPONSES[502]}
)
async def create_broker_profile(
    request: Request,
    profile_service: ProfileService = Depends(get_profile_service),
    uploads: UploadPipeline = Depends(get_upload_pipeline)
) -> BrokerProfileResponse:
    async with request.form(max_files=2) as form:
        data = BrokerProfileCreate.model_validate(form_fields(form, exclude=(ID_CARD_FIELD,)))
        cards = await uploads.read_parts(ID_CARD_FIELD, form_files(form, ID_CARD_FIELD)[:1])

    profile = await profile_service.create_broker_profile(data, cards[0] if cards else None)
    return BrokerProfileResponse.from_profile(profile)
