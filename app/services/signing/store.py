"""Persistence boundary of the signing engine.

A ``SigningStore`` hands out per-document transactions. Everything the
engine reads to decide eligibility and everything it writes as a result
happens inside one ``DocumentTransaction``, which holds the document's
exclusive lock for its whole lifetime and either commits all of its
writes or none of them.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Iterable, Optional, Sequence, Set
from uuid import UUID

from app.models.signing import (
    DocumentRef,
    DocumentSnapshot,
    DocumentStatus,
    SequenceEntryData,
    SignatureRecordData,
    SignerRef,
)


class DocumentTransaction(ABC):
    """Scoped read/append access to one document's sequence and ledger."""

    document_id: UUID

    @abstractmethod
    async def snapshot(self) -> DocumentSnapshot:
        """Read the document, its sequence and its ledger, including this
        transaction's own uncommitted writes."""

    @abstractmethod
    async def add_sequence(self, entries: Sequence[SequenceEntryData]) -> None:
        """Stage a batch of sequence entries."""

    @abstractmethod
    async def append_record(self, record: SignatureRecordData) -> None:
        """Stage one ledger row."""

    @abstractmethod
    async def set_status(self, status: DocumentStatus) -> None:
        """Stage the document's projected aggregate status."""


class SigningStore(ABC):
    """Storage collaborator of the sequencing engine."""

    backend: str = "abstract"

    @abstractmethod
    async def get_document(self, document_id: UUID) -> Optional[DocumentRef]:
        """Directory lookup; None when the document does not exist."""

    @abstractmethod
    async def get_signer(self, signer_id: UUID) -> Optional[SignerRef]:
        """Directory lookup; None when the signer does not exist."""

    @abstractmethod
    async def existing_signer_ids(self, signer_ids: Iterable[UUID]) -> Set[UUID]:
        """Return which of the given signer IDs exist."""

    @abstractmethod
    async def create_signer(self, display_name: str, contact_ref: Optional[str] = None) -> SignerRef:
        """Register a signer in the directory."""

    @abstractmethod
    async def create_document(self, title: str, content_ref: str) -> DocumentRef:
        """Create a document with no sequence yet."""

    @abstractmethod
    def document_transaction(self, document_id: UUID) -> AbstractAsyncContextManager[DocumentTransaction]:
        """Open an exclusive transaction on an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist
            ConcurrencyConflictError: If the lock could not be taken in time
                or the commit lost a race
        """

    @abstractmethod
    def new_document_transaction(
        self, title: str, content_ref: str
    ) -> AbstractAsyncContextManager[DocumentTransaction]:
        """Create a document and open an exclusive transaction on it.

        The document only becomes visible if the transaction commits.
        """

    @abstractmethod
    async def read_snapshot(self, document_id: UUID) -> Optional[DocumentSnapshot]:
        """Consistent read of one document without taking its write lock."""

    async def health_check(self) -> dict:
        return {"status": "healthy", "backend": self.backend}
