from typing import Optional
from uuid import UUID
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Document
from app.models.signing import DocumentRef, DocumentStatus
from app.repositories.base_repository import BaseRepository
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentRepository(BaseRepository[Document]):
    """Repository for managing Document records."""

    def __init__(self, session: AsyncSession):
        """Initialize document repository.

        Args:
            session: SQLAlchemy async session
        """
        super().__init__(session, Document)

    async def create_document(
        self,
        title: str,
        content_ref: str,
        document_id: Optional[UUID] = None,
        status: DocumentStatus = DocumentStatus.PENDING,
    ) -> Document:
        """Create a new document record.

        Args:
            title: Document title
            content_ref: Pointer to the stored content
            document_id: Optional explicit ID
            status: Initial aggregate status

        Returns:
            Created Document record
        """
        now = datetime.now(timezone.utc)
        fields = dict(
            title=title,
            content_ref=content_ref,
            status=status.value,
            created_at=now,
            updated_at=now,
        )
        if document_id is not None:
            fields["id"] = document_id
        return await self.create(**fields)

    async def get_for_update(self, document_id: UUID) -> Optional[Document]:
        """Fetch a document row and hold its row lock until the transaction ends.

        This is the per-document serialization point: every mutating
        transaction on a document goes through here first.

        Args:
            document_id: Document ID

        Returns:
            Locked Document record, or None if it does not exist
        """
        result = await self.session.execute(
            select(Document).where(Document.id == document_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def update_status(self, document: Document, status: DocumentStatus) -> Document:
        """Write the projected aggregate status onto a locked document row.

        Args:
            document: Document record already locked by this transaction
            status: New aggregate status

        Returns:
            Updated Document record
        """
        document.status = status.value
        document.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return document

    @staticmethod
    def as_ref(document: Document) -> DocumentRef:
        return DocumentRef(
            id=document.id,
            title=document.title,
            content_ref=document.content_ref,
            status=DocumentStatus(document.status),
            created_at=document.created_at,
        )
