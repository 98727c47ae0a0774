"""PostgreSQL implementation of the signing store.

Per-document serialization is a ``SELECT ... FOR UPDATE`` on the document
row, taken as the first statement of every mutating transaction and held
until commit or rollback. Writers on different documents never touch the
same row and proceed in parallel.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import ConcurrencyConflictError, DatabaseError, DocumentNotFoundError
from app.models.signing import (
    DocumentRef,
    DocumentSnapshot,
    DocumentStatus,
    SequenceEntryData,
    SignatureRecordData,
    SignerRef,
)
from app.repositories.document_repository import DocumentRepository
from app.repositories.sequence_repository import SequenceRepository
from app.repositories.signature_repository import SignatureRepository
from app.repositories.signer_repository import SignerRepository
from app.services.signing.store import DocumentTransaction, SigningStore
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

# SQLSTATEs that mean "lost a contention race", not "broken request"
CONTENTION_SQLSTATES = {
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
    "55P03",  # lock_not_available (lock_timeout)
    "23505",  # unique_violation
}


def sqlstate_of(error: DBAPIError) -> Optional[str]:
    orig = getattr(error, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_error(error: SQLAlchemyError, document_id: Optional[UUID] = None) -> Exception:
    """Map a storage error onto the application error hierarchy.

    Args:
        error: Error raised by SQLAlchemy
        document_id: Document the transaction was scoped to

    Returns:
        ConcurrencyConflictError for contention losses, DatabaseError otherwise
    """
    if isinstance(error, IntegrityError) or (
        isinstance(error, DBAPIError) and sqlstate_of(error) in CONTENTION_SQLSTATES
    ):
        LOGGER.warning(
            "Signing transaction lost a contention race",
            extra={"document_id": str(document_id), "error": str(error)},
        )
        return ConcurrencyConflictError(
            f"Concurrent update on document {document_id}",
            document_id=document_id,
            original_error=error,
        )

    LOGGER.error(
        f"Signing store failure: {str(error)}",
        exc_info=True,
        extra={"document_id": str(document_id)},
    )
    return DatabaseError(f"Database operation failed: {str(error)}", original_error=error)


class SqlDocumentTransaction(DocumentTransaction):
    """Document transaction bound to one session and one locked document row."""

    def __init__(self, session: AsyncSession, document):
        self.session = session
        self.document = document
        self.document_id = document.id
        self.documents = DocumentRepository(session)
        self.sequence = SequenceRepository(session)
        self.signatures = SignatureRepository(session)

    async def snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(
            document=DocumentRepository.as_ref(self.document),
            entries=await self.sequence.list_for_document(self.document_id),
            records=await self.signatures.list_for_document(self.document_id),
        )

    async def add_sequence(self, entries: Sequence[SequenceEntryData]) -> None:
        await self.sequence.create_batch(entries)

    async def append_record(self, record: SignatureRecordData) -> None:
        await self.signatures.append(record)

    async def set_status(self, status: DocumentStatus) -> None:
        await self.documents.update_status(self.document, status)


class SqlSigningStore(SigningStore):
    """Signing store backed by PostgreSQL through SQLAlchemy's async ORM."""

    backend = "postgres"

    def __init__(self, session_maker: async_sessionmaker, lock_timeout_ms: int = 5000, db_client=None):
        """Initialize the store.

        Args:
            session_maker: Factory for AsyncSession objects
            lock_timeout_ms: Maximum wait for a document's row lock
            db_client: Optional DatabaseClient used for health checks
        """
        self.session_maker = session_maker
        self.lock_timeout_ms = int(lock_timeout_ms)
        self.db_client = db_client

    async def _set_lock_timeout(self, session: AsyncSession) -> None:
        # SET does not take bind parameters
        await session.execute(text(f"SET LOCAL lock_timeout = {self.lock_timeout_ms}"))

    async def get_document(self, document_id: UUID) -> Optional[DocumentRef]:
        try:
            async with self.session_maker() as session:
                document = await DocumentRepository(session).get_by_id(document_id)
                return DocumentRepository.as_ref(document) if document else None
        except SQLAlchemyError as e:
            raise translate_error(e, document_id) from e

    async def get_signer(self, signer_id: UUID) -> Optional[SignerRef]:
        try:
            async with self.session_maker() as session:
                signer = await SignerRepository(session).get_by_id(signer_id)
                return SignerRepository.as_ref(signer) if signer else None
        except SQLAlchemyError as e:
            raise translate_error(e) from e

    async def existing_signer_ids(self, signer_ids: Iterable[UUID]) -> Set[UUID]:
        try:
            async with self.session_maker() as session:
                return await SignerRepository(session).existing_ids(signer_ids)
        except SQLAlchemyError as e:
            raise translate_error(e) from e

    async def create_signer(self, display_name: str, contact_ref: Optional[str] = None) -> SignerRef:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    signer = await SignerRepository(session).create_signer(display_name, contact_ref)
                return SignerRepository.as_ref(signer)
        except SQLAlchemyError as e:
            raise translate_error(e) from e

    async def create_document(self, title: str, content_ref: str) -> DocumentRef:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    document = await DocumentRepository(session).create_document(title, content_ref)
                return DocumentRepository.as_ref(document)
        except SQLAlchemyError as e:
            raise translate_error(e) from e

    @asynccontextmanager
    async def document_transaction(self, document_id: UUID) -> AsyncIterator[DocumentTransaction]:
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    await self._set_lock_timeout(session)
                    document = await DocumentRepository(session).get_for_update(document_id)
                    if document is None:
                        raise DocumentNotFoundError(
                            f"Document {document_id} not found", document_id=document_id
                        )
                    yield SqlDocumentTransaction(session, document)
        except SQLAlchemyError as e:
            raise translate_error(e, document_id) from e

    @asynccontextmanager
    async def new_document_transaction(self, title: str, content_ref: str) -> AsyncIterator[DocumentTransaction]:
        document_id = None
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    document = await DocumentRepository(session).create_document(title, content_ref)
                    document_id = document.id
                    yield SqlDocumentTransaction(session, document)
        except SQLAlchemyError as e:
            raise translate_error(e, document_id) from e

    async def read_snapshot(self, document_id: UUID) -> Optional[DocumentSnapshot]:
        try:
            async with self.session_maker() as session:
                # One snapshot for document, sequence and ledger; no row locks
                await session.connection(
                    execution_options={"isolation_level": "REPEATABLE READ", "postgresql_readonly": True}
                )
                document = await DocumentRepository(session).get_by_id(document_id)
                if document is None:
                    return None
                return DocumentSnapshot(
                    document=DocumentRepository.as_ref(document),
                    entries=await SequenceRepository(session).list_for_document(document_id),
                    records=await SignatureRepository(session).list_for_document(document_id),
                )
        except SQLAlchemyError as e:
            raise translate_error(e, document_id) from e

    async def health_check(self) -> dict:
        if self.db_client is None:
            return await super().health_check()
        result = await self.db_client.health_check()
        result["backend"] = self.backend
        return result
