"""Request and response schemas for the signing API."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.signing import DocumentRef, DocumentStatus, SignatureOutcome, SignerRef, StatusView


class SignerCreateRequest(BaseModel):
    """Request model for registering a signer."""

    display_name: str = Field(..., min_length=1, description="Name shown to other participants")
    contact_ref: Optional[str] = Field(
        default=None,
        description="Email address or other contact pointer",
        examples=["alice@example.com"],
    )


class SignerResponse(BaseModel):
    id: UUID
    display_name: str
    contact_ref: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_ref(cls, signer: SignerRef) -> "SignerResponse":
        return cls(
            id=signer.id,
            display_name=signer.display_name,
            contact_ref=signer.contact_ref,
            created_at=signer.created_at,
        )


class DocumentCreateRequest(BaseModel):
    """Request model for creating a document, optionally with its signer order."""

    title: str = Field(..., min_length=1, examples=["Master Services Agreement"])
    content_ref: str = Field(
        ...,
        min_length=1,
        description="Where the document content lives",
        examples=["s3://contracts/msa-2026.pdf"],
    )
    signer_ids: Optional[List[UUID]] = Field(
        default=None,
        description="Ordered signers; when present the sequence is created with the document",
    )


class DocumentResponse(BaseModel):
    id: UUID
    title: str
    content_ref: str
    status: DocumentStatus
    created_at: datetime

    @classmethod
    def from_ref(cls, document: DocumentRef, status: Optional[DocumentStatus] = None) -> "DocumentResponse":
        return cls(
            id=document.id,
            title=document.title,
            content_ref=document.content_ref,
            status=status or document.status,
            created_at=document.created_at,
        )


class SequenceInitializeRequest(BaseModel):
    """Ordered signer list; position is list index + 1."""

    signer_ids: List[UUID] = Field(..., description="Signers in required signing order")


class SignatureSubmitRequest(BaseModel):
    signer_id: UUID
    decision: str = Field(..., description="'completed' or 'rejected'", examples=["completed"])


class LedgerEntryResponse(BaseModel):
    position: int
    signer_id: UUID
    outcome: Optional[SignatureOutcome] = None
    recorded_at: Optional[datetime] = None


class DocumentStatusResponse(BaseModel):
    document_id: UUID
    status: DocumentStatus
    ledger: List[LedgerEntryResponse]

    @classmethod
    def from_view(cls, view: StatusView) -> "DocumentStatusResponse":
        return cls(
            document_id=view.document_id,
            status=view.status,
            ledger=[
                LedgerEntryResponse(
                    position=entry.position,
                    signer_id=entry.signer_id,
                    outcome=entry.outcome,
                    recorded_at=entry.recorded_at,
                )
                for entry in view.ledger
            ],
        )
