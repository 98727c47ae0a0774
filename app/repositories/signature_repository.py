from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import SignatureRecord
from app.models.signing import SignatureOutcome, SignatureRecordData
from app.repositories.base_repository import BaseRepository


class SignatureRepository(BaseRepository[SignatureRecord]):
    """Signature ledger. Append-only: there is no update or delete path."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, SignatureRecord)

    async def list_for_document(self, document_id: UUID) -> List[SignatureRecordData]:
        """Fetch every ledger row of a document in recording order.

        Args:
            document_id: Document ID

        Returns:
            List of signature records
        """
        result = await self.session.execute(
            select(SignatureRecord)
            .where(SignatureRecord.document_id == document_id)
            .order_by(SignatureRecord.recorded_at, SignatureRecord.position)
        )
        return [
            SignatureRecordData(
                id=row.id,
                document_id=row.document_id,
                signer_id=row.signer_id,
                position=row.position,
                outcome=SignatureOutcome(row.outcome),
                recorded_at=row.recorded_at,
            )
            for row in result.scalars().all()
        ]

    async def append(self, record: SignatureRecordData) -> SignatureRecord:
        """Append one ledger row.

        Args:
            record: Record to append

        Returns:
            The stored SignatureRecord
        """
        return await self.create(
            id=record.id,
            document_id=record.document_id,
            signer_id=record.signer_id,
            position=record.position,
            outcome=record.outcome.value,
            recorded_at=record.recorded_at,
        )
