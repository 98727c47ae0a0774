from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from app.core.dependencies import get_directory_service
from app.schemas.common import ApiResponse
from app.schemas.signing import SignerCreateRequest, SignerResponse
from app.services.directory_service import DirectoryService
from app.utils.responses import create_api_response

router = APIRouter()


@router.post(
    "/",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a signer",
    operation_id="create_signer",
)
async def create_signer(
    request: Request,
    body: SignerCreateRequest,
    directory: Annotated[DirectoryService, Depends(get_directory_service)],
) -> ApiResponse:
    signer = await directory.create_signer(body.display_name, body.contact_ref)
    return create_api_response(
        data=SignerResponse.from_ref(signer),
        message="Signer registered successfully",
        request=request
    )


@router.get(
    "/{signer_id}",
    response_model=ApiResponse,
    summary="Get signer details",
    operation_id="get_signer",
)
async def get_signer(
    request: Request,
    signer_id: UUID,
    directory: Annotated[DirectoryService, Depends(get_directory_service)],
) -> ApiResponse:
    signer = await directory.get_signer(signer_id)
    return create_api_response(
        data=SignerResponse.from_ref(signer),
        message="Signer retrieved successfully",
        request=request
    )
