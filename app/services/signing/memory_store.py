"""Process-local implementation of the signing store.

Each document has its own ``asyncio.Lock``; a document transaction holds
it from open to commit. Writes are staged on the transaction and only
published to the shared maps when the transaction body finishes without
raising, so a failed call never leaves partial state behind.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional, Sequence, Set
from uuid import UUID, uuid4

from app.core.exceptions import ConcurrencyConflictError, DocumentNotFoundError
from app.models.signing import (
    DocumentRef,
    DocumentSnapshot,
    DocumentStatus,
    SequenceEntryData,
    SignatureRecordData,
    SignerRef,
)
from app.services.signing.store import DocumentTransaction, SigningStore
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class MemoryDocumentTransaction(DocumentTransaction):
    """Staged writes against one locked document."""

    def __init__(self, store: "InMemorySigningStore", document: DocumentRef):
        self.store = store
        self.document = document
        self.document_id = document.id
        self.staged_entries: List[SequenceEntryData] = []
        self.staged_records: List[SignatureRecordData] = []
        self.staged_status: Optional[DocumentStatus] = None

    async def snapshot(self) -> DocumentSnapshot:
        document = self.document
        if self.staged_status is not None:
            document = DocumentRef(
                id=document.id,
                title=document.title,
                content_ref=document.content_ref,
                status=self.staged_status,
                created_at=document.created_at,
            )
        return DocumentSnapshot(
            document=document,
            entries=self.store._entries.get(self.document_id, []) + self.staged_entries,
            records=self.store._records.get(self.document_id, []) + self.staged_records,
        )

    async def add_sequence(self, entries: Sequence[SequenceEntryData]) -> None:
        self.staged_entries.extend(entries)

    async def append_record(self, record: SignatureRecordData) -> None:
        self.staged_records.append(record)

    async def set_status(self, status: DocumentStatus) -> None:
        self.staged_status = status


class InMemorySigningStore(SigningStore):
    """Signing store kept in process memory."""

    backend = "memory"

    def __init__(self, lock_timeout: Optional[float] = None):
        """Initialize an empty store.

        Args:
            lock_timeout: Seconds to wait for a document lock before giving up
                with ConcurrencyConflictError. None waits indefinitely.
        """
        self.lock_timeout = lock_timeout
        self._documents: Dict[UUID, DocumentRef] = {}
        self._signers: Dict[UUID, SignerRef] = {}
        self._entries: Dict[UUID, List[SequenceEntryData]] = {}
        self._records: Dict[UUID, List[SignatureRecordData]] = {}
        # A document's lock lives only while someone holds or waits for it
        self._locks: Dict[UUID, asyncio.Lock] = {}
        self._lock_users: Dict[UUID, int] = {}

    def _forget_lock(self, document_id: UUID) -> None:
        self._lock_users[document_id] -= 1
        if not self._lock_users[document_id]:
            del self._lock_users[document_id]
            del self._locks[document_id]

    async def _acquire(self, document_id: UUID) -> asyncio.Lock:
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        self._lock_users[document_id] = self._lock_users.get(document_id, 0) + 1
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.lock_timeout)
        except asyncio.TimeoutError as e:
            self._forget_lock(document_id)
            LOGGER.warning(
                "Timed out waiting for document lock",
                extra={"document_id": str(document_id), "lock_timeout": self.lock_timeout},
            )
            raise ConcurrencyConflictError(
                f"Timed out waiting for lock on document {document_id}",
                document_id=document_id,
                original_error=e,
            ) from e
        except asyncio.CancelledError:
            self._forget_lock(document_id)
            raise
        return lock

    def _release(self, document_id: UUID, lock: asyncio.Lock) -> None:
        lock.release()
        self._forget_lock(document_id)

    async def get_document(self, document_id: UUID) -> Optional[DocumentRef]:
        return self._documents.get(document_id)

    async def get_signer(self, signer_id: UUID) -> Optional[SignerRef]:
        return self._signers.get(signer_id)

    async def existing_signer_ids(self, signer_ids: Iterable[UUID]) -> Set[UUID]:
        return {signer_id for signer_id in signer_ids if signer_id in self._signers}

    async def create_signer(self, display_name: str, contact_ref: Optional[str] = None) -> SignerRef:
        signer = SignerRef(id=uuid4(), display_name=display_name, contact_ref=contact_ref)
        self._signers[signer.id] = signer
        return signer

    async def create_document(self, title: str, content_ref: str) -> DocumentRef:
        document = DocumentRef(id=uuid4(), title=title, content_ref=content_ref)
        self._documents[document.id] = document
        return document

    def _check_constraints(self, tx: MemoryDocumentTransaction) -> None:
        """Enforce the same uniqueness rules the database schema does."""
        entries = self._entries.get(tx.document_id, []) + tx.staged_entries
        positions = [entry.position for entry in entries]
        signers = [entry.signer_id for entry in entries]
        terminal = [
            record.signer_id
            for record in self._records.get(tx.document_id, []) + tx.staged_records
            if record.outcome.is_terminal
        ]
        if (
            len(set(positions)) != len(positions)
            or len(set(signers)) != len(signers)
            or len(set(terminal)) != len(terminal)
        ):
            raise ConcurrencyConflictError(
                f"Uniqueness violation on document {tx.document_id}",
                document_id=tx.document_id,
            )

    def _publish(self, tx: MemoryDocumentTransaction) -> None:
        self._check_constraints(tx)
        snapshot_document = tx.document
        if tx.staged_status is not None:
            snapshot_document = DocumentRef(
                id=tx.document.id,
                title=tx.document.title,
                content_ref=tx.document.content_ref,
                status=tx.staged_status,
                created_at=tx.document.created_at,
            )
        self._documents[tx.document_id] = snapshot_document
        if tx.staged_entries:
            self._entries[tx.document_id] = self._entries.get(tx.document_id, []) + tx.staged_entries
        if tx.staged_records:
            self._records[tx.document_id] = self._records.get(tx.document_id, []) + tx.staged_records

    @asynccontextmanager
    async def document_transaction(self, document_id: UUID) -> AsyncIterator[DocumentTransaction]:
        if document_id not in self._documents:
            raise DocumentNotFoundError(f"Document {document_id} not found", document_id=document_id)

        lock = await self._acquire(document_id)
        try:
            tx = MemoryDocumentTransaction(self, self._documents[document_id])
            yield tx
            self._publish(tx)
        finally:
            self._release(document_id, lock)

    @asynccontextmanager
    async def new_document_transaction(self, title: str, content_ref: str) -> AsyncIterator[DocumentTransaction]:
        document = DocumentRef(id=uuid4(), title=title, content_ref=content_ref)
        lock = await self._acquire(document.id)
        try:
            tx = MemoryDocumentTransaction(self, document)
            yield tx
            self._publish(tx)
        finally:
            self._release(document.id, lock)

    async def read_snapshot(self, document_id: UUID) -> Optional[DocumentSnapshot]:
        document = self._documents.get(document_id)
        if document is None:
            return None
        # Published state only changes between awaits, so these copies agree
        return DocumentSnapshot(
            document=document,
            entries=list(self._entries.get(document_id, [])),
            records=list(self._records.get(document_id, [])),
        )
