from typing import List, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import SequenceEntry
from app.models.signing import SequenceEntryData
from app.repositories.base_repository import BaseRepository
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SequenceRepository(BaseRepository[SequenceEntry]):
    """Sequence definition store: the ordered required signers per document."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, SequenceEntry)

    async def list_for_document(self, document_id: UUID) -> List[SequenceEntryData]:
        """Fetch a document's sequence ordered by position.

        Args:
            document_id: Document ID

        Returns:
            Ordered list of sequence entries (empty if not initialized)
        """
        result = await self.session.execute(
            select(SequenceEntry)
            .where(SequenceEntry.document_id == document_id)
            .order_by(SequenceEntry.position)
        )
        return [
            SequenceEntryData(
                document_id=row.document_id,
                signer_id=row.signer_id,
                position=row.position,
            )
            for row in result.scalars().all()
        ]

    async def create_batch(self, entries: Sequence[SequenceEntryData]) -> None:
        """Insert a whole sequence in one flush.

        Args:
            entries: Sequence entries to store
        """
        for entry in entries:
            self.session.add(
                SequenceEntry(
                    document_id=entry.document_id,
                    signer_id=entry.signer_id,
                    position=entry.position,
                )
            )
        await self.session.flush()
        LOGGER.info(
            f"Stored {len(entries)} sequence entries",
            extra={"document_id": str(entries[0].document_id) if entries else None},
        )
