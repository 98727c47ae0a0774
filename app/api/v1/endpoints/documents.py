from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from app.core.dependencies import get_directory_service, get_sequencing_engine
from app.schemas.common import ApiResponse
from app.schemas.signing import (
    DocumentCreateRequest,
    DocumentResponse,
    DocumentStatusResponse,
    SequenceInitializeRequest,
    SignatureSubmitRequest,
)
from app.services.directory_service import DirectoryService
from app.services.signing.sequencing_engine import SequencingEngine
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a document",
    operation_id="create_document",
)
async def create_document(
    request: Request,
    body: DocumentCreateRequest,
    directory: Annotated[DirectoryService, Depends(get_directory_service)],
) -> ApiResponse:
    """Create a document; with signer_ids it enters the signing workflow immediately."""
    document, view = await directory.create_document(body.title, body.content_ref, body.signer_ids)

    data = {"document": DocumentResponse.from_ref(document, view.status if view else None).model_dump(mode="json")}
    if view is not None:
        data["signing"] = DocumentStatusResponse.from_view(view).model_dump(mode="json")

    return create_api_response(
        data=data,
        message="Document created successfully",
        request=request
    )


@router.get(
    "/{document_id}",
    response_model=ApiResponse,
    summary="Get document details",
    operation_id="get_document",
)
async def get_document(
    request: Request,
    document_id: UUID,
    directory: Annotated[DirectoryService, Depends(get_directory_service)],
) -> ApiResponse:
    document = await directory.get_document(document_id)
    return create_api_response(
        data=DocumentResponse.from_ref(document),
        message="Document details retrieved successfully",
        request=request
    )


@router.post(
    "/{document_id}/sequence",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Initialize the signing sequence",
    operation_id="initialize_sequence",
)
async def initialize_sequence(
    request: Request,
    document_id: UUID,
    body: SequenceInitializeRequest,
    engine: Annotated[SequencingEngine, Depends(get_sequencing_engine)],
) -> ApiResponse:
    """Set the ordered signer list of a document. Allowed once per document."""
    view = await engine.initialize_sequence(document_id, body.signer_ids)
    return create_api_response(
        data=DocumentStatusResponse.from_view(view),
        message="Signing sequence initialized",
        request=request
    )


@router.post(
    "/{document_id}/signatures",
    response_model=ApiResponse,
    summary="Submit a signature decision",
    operation_id="request_signature",
)
async def request_signature(
    request: Request,
    document_id: UUID,
    body: SignatureSubmitRequest,
    engine: Annotated[SequencingEngine, Depends(get_sequencing_engine)],
) -> ApiResponse:
    """Complete or reject on behalf of the signer whose turn it is."""
    view = await engine.request_signature(document_id, body.signer_id, body.decision)
    return create_api_response(
        data=DocumentStatusResponse.from_view(view),
        message=f"Signature recorded; document is {view.status.value}",
        request=request
    )


@router.get(
    "/{document_id}/status",
    response_model=ApiResponse,
    summary="Get signing status and ledger",
    operation_id="get_document_status",
)
async def get_document_status(
    request: Request,
    document_id: UUID,
    engine: Annotated[SequencingEngine, Depends(get_sequencing_engine)],
) -> ApiResponse:
    view = await engine.get_status(document_id)
    return create_api_response(
        data=DocumentStatusResponse.from_view(view),
        message="Document status retrieved successfully",
        request=request
    )
