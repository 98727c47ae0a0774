"""Document and signer directory operations."""

from typing import Any, Optional, Sequence, Tuple
from uuid import UUID

from app.core.exceptions import AppError, DocumentNotFoundError, SignerNotFoundError, ValidationError
from app.models.signing import DocumentRef, SignerRef, StatusView
from app.services.base_service import BaseService
from app.services.signing.sequencing_engine import SequencingEngine
from app.services.signing.store import SigningStore
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DirectoryService(BaseService):
    """Thin CRUD over documents and signers.

    Creating a document together with its signer list is delegated to the
    engine so both land in one transaction.
    """

    def __init__(self, store: SigningStore, engine: SequencingEngine):
        super().__init__()
        self.store = store
        self.engine = engine

    async def create_signer(self, display_name: str, contact_ref: Optional[str] = None) -> SignerRef:
        return await self.execute(action="create_signer", display_name=display_name, contact_ref=contact_ref)

    async def get_signer(self, signer_id: UUID) -> SignerRef:
        return await self.execute(action="get_signer", signer_id=signer_id)

    async def create_document(
        self,
        title: str,
        content_ref: str,
        signer_ids: Optional[Sequence[UUID]] = None,
    ) -> Tuple[DocumentRef, Optional[StatusView]]:
        """Create a document, optionally entering it into the signing workflow.

        Args:
            title: Document title
            content_ref: Pointer to the stored content
            signer_ids: Optional ordered signer list

        Returns:
            The document and, when a signer list was given, its initial status
        """
        return await self.execute(
            action="create_document",
            title=title,
            content_ref=content_ref,
            signer_ids=signer_ids,
        )

    async def get_document(self, document_id: UUID) -> DocumentRef:
        return await self.execute(action="get_document", document_id=document_id)

    def validate(self, *args, **kwargs):
        action = kwargs.get("action")
        if action == "create_signer" and not (kwargs.get("display_name") or "").strip():
            raise ValidationError("Signer display name is required")
        if action == "create_document":
            if not (kwargs.get("title") or "").strip():
                raise ValidationError("Document title is required")
            if not (kwargs.get("content_ref") or "").strip():
                raise ValidationError("Document content reference is required")

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")

        if action == "create_signer":
            signer = await self.store.create_signer(kwargs["display_name"].strip(), kwargs.get("contact_ref"))
            LOGGER.info(f"Registered signer {signer.id}")
            return signer
        elif action == "get_signer":
            signer = await self.store.get_signer(kwargs["signer_id"])
            if signer is None:
                raise SignerNotFoundError(f"Signer {kwargs['signer_id']} not found", signer_id=kwargs["signer_id"])
            return signer
        elif action == "create_document":
            return await self._create_document_logic(kwargs["title"].strip(), kwargs["content_ref"].strip(), kwargs.get("signer_ids"))
        elif action == "get_document":
            document = await self.store.get_document(kwargs["document_id"])
            if document is None:
                raise DocumentNotFoundError(f"Document {kwargs['document_id']} not found", document_id=kwargs["document_id"])
            return document
        else:
            raise AppError(f"Unknown action: {action}")

    async def _create_document_logic(
        self, title: str, content_ref: str, signer_ids: Optional[Sequence[UUID]]
    ) -> Tuple[DocumentRef, Optional[StatusView]]:
        if signer_ids is not None:
            return await self.engine.open_workflow(title, content_ref, signer_ids)

        document = await self.store.create_document(title, content_ref)
        LOGGER.info(f"Created document {document.id} without a signing sequence")
        return document, None
