from typing import Iterable, Optional, Set
from uuid import UUID
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Signer
from app.models.signing import SignerRef
from app.repositories.base_repository import BaseRepository


class SignerRepository(BaseRepository[Signer]):
    """Repository for the signer directory."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Signer)

    async def create_signer(
        self,
        display_name: str,
        contact_ref: Optional[str] = None,
        signer_id: Optional[UUID] = None,
    ) -> Signer:
        """Create a new signer record.

        Args:
            display_name: Name shown to other participants
            contact_ref: Email address or other contact pointer
            signer_id: Optional explicit ID

        Returns:
            Created Signer record
        """
        fields = dict(
            display_name=display_name,
            contact_ref=contact_ref,
            created_at=datetime.now(timezone.utc),
        )
        if signer_id is not None:
            fields["id"] = signer_id
        return await self.create(**fields)

    async def existing_ids(self, signer_ids: Iterable[UUID]) -> Set[UUID]:
        """Return the subset of the given IDs that exist in the directory."""
        ids = list(signer_ids)
        if not ids:
            return set()
        result = await self.session.execute(select(Signer.id).where(Signer.id.in_(ids)))
        return set(result.scalars().all())

    @staticmethod
    def as_ref(signer: Signer) -> SignerRef:
        return SignerRef(
            id=signer.id,
            display_name=signer.display_name,
            contact_ref=signer.contact_ref,
            created_at=signer.created_at,
        )
