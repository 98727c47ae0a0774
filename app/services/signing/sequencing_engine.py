"""Signature sequencing engine.

Decides whether a sign request is currently valid, records the outcome in
the ledger and recomputes the document status, all inside one
per-document transaction. Admission control is the store's lock: a
writer that loses a race simply sees its preconditions fail as if it had
run after the winner.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar, Union
from uuid import UUID

from app.core.exceptions import (
    AlreadyActedError,
    AlreadyInitializedError,
    ConcurrencyConflictError,
    InvalidDecisionError,
    InvalidSequenceError,
    OutOfTurnError,
    SignerNotFoundError,
    SignerNotInSequenceError,
    SigningError,
    DocumentNotFoundError,
    WorkflowClosedError,
    AppError,
)
from app.models.signing import (
    DocumentRef,
    DocumentSnapshot,
    DocumentStatus,
    SequenceEntryData,
    SignatureOutcome,
    SignatureRecordData,
    StatusView,
)
from app.services.base_service import BaseService
from app.services.signing.events import EventSink, LoggingEventSink, SigningEvent, SigningEventType
from app.services.signing.status_projector import StatusProjector
from app.services.signing.store import DocumentTransaction, SigningStore
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")


def parse_decision(decision: Union[str, SignatureOutcome]) -> SignatureOutcome:
    """Normalize a caller-submitted decision.

    Only terminal decisions can be submitted; Pending is a record state,
    never a request.

    Raises:
        InvalidDecisionError: If the decision is not Completed or Rejected
    """
    if isinstance(decision, SignatureOutcome):
        outcome = decision
    else:
        try:
            outcome = SignatureOutcome(str(decision).strip().lower())
        except ValueError:
            raise InvalidDecisionError(f"Unknown decision: {decision!r}")

    if not outcome.is_terminal:
        raise InvalidDecisionError("Decision must be 'completed' or 'rejected'")
    return outcome


class SequencingEngine(BaseService):
    """Owns InitializeSequence, RequestSignature and GetStatus."""

    def __init__(
        self,
        store: SigningStore,
        event_sink: Optional[EventSink] = None,
        max_retries: int = 3,
        retry_delay: float = 0.05,
        projector: Optional[StatusProjector] = None,
    ):
        """Initialize the engine.

        Args:
            store: Persistence boundary providing per-document transactions
            event_sink: Receiver of post-commit domain events
            max_retries: Extra attempts after a ConcurrencyConflictError
            retry_delay: Base of the exponential backoff, in seconds
            projector: Status projector (a fresh one by default)
        """
        super().__init__()
        self.store = store
        self.event_sink = event_sink or LoggingEventSink()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.projector = projector or StatusProjector()

    # Public API

    async def initialize_sequence(self, document_id: UUID, signer_ids: Sequence[UUID]) -> StatusView:
        """Write a document's ordered signer list, once.

        Args:
            document_id: Document ID
            signer_ids: Ordered, non-empty, duplicate-free signer IDs;
                position = index + 1

        Returns:
            StatusView with status Pending and an empty ledger

        Raises:
            InvalidSequenceError, DocumentNotFoundError, SignerNotFoundError,
            AlreadyInitializedError, ConcurrencyConflictError
        """
        return await self.execute(
            action="initialize_sequence",
            document_id=document_id,
            signer_ids=list(signer_ids),
        )

    async def open_workflow(
        self, title: str, content_ref: str, signer_ids: Sequence[UUID]
    ) -> Tuple[DocumentRef, StatusView]:
        """Create a document and its sequence in one transaction."""
        return await self.execute(
            action="open_workflow",
            title=title,
            content_ref=content_ref,
            signer_ids=list(signer_ids),
        )

    async def request_signature(
        self,
        document_id: UUID,
        signer_id: UUID,
        decision: Union[str, SignatureOutcome],
    ) -> StatusView:
        """Record a signer's decision if it is their turn.

        Args:
            document_id: Document ID
            signer_id: Acting signer
            decision: "completed" or "rejected"

        Returns:
            StatusView reflecting the committed ledger

        Raises:
            InvalidDecisionError, DocumentNotFoundError, SignerNotInSequenceError,
            WorkflowClosedError, AlreadyActedError, OutOfTurnError,
            ConcurrencyConflictError
        """
        return await self.execute(
            action="request_signature",
            document_id=document_id,
            signer_id=signer_id,
            decision=decision,
        )

    async def get_status(self, document_id: UUID) -> StatusView:
        """Aggregate status plus per-signer ledger, read without the write lock."""
        return await self.execute(action="get_status", document_id=document_id)

    # BaseService hooks

    def validate(self, *args, **kwargs):
        action = kwargs.get("action")
        if action in ("initialize_sequence", "open_workflow"):
            self._validate_signer_list(kwargs.get("signer_ids") or [])
        elif action == "request_signature":
            parse_decision(kwargs.get("decision"))

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")

        if action == "initialize_sequence":
            return await self._initialize_sequence_logic(kwargs["document_id"], kwargs["signer_ids"])
        elif action == "open_workflow":
            return await self._open_workflow_logic(kwargs["title"], kwargs["content_ref"], kwargs["signer_ids"])
        elif action == "request_signature":
            return await self._request_signature_logic(
                kwargs["document_id"], kwargs["signer_id"], parse_decision(kwargs["decision"])
            )
        elif action == "get_status":
            return await self._get_status_logic(kwargs["document_id"])
        else:
            raise AppError(f"Unknown action: {action}")

    # Core logic

    @staticmethod
    def _validate_signer_list(signer_ids: List[UUID]) -> None:
        if not signer_ids:
            raise InvalidSequenceError("A signing sequence needs at least one signer")
        if len(set(signer_ids)) != len(signer_ids):
            raise InvalidSequenceError("A signer may appear only once in a signing sequence")

    async def _require_signers(self, signer_ids: List[UUID], document_id: Optional[UUID] = None) -> None:
        existing = await self.store.existing_signer_ids(signer_ids)
        missing = [signer_id for signer_id in signer_ids if signer_id not in existing]
        if missing:
            raise SignerNotFoundError(
                f"Unknown signer(s): {', '.join(str(m) for m in missing)}",
                document_id=document_id,
                signer_id=missing[0],
            )

    async def _write_sequence(self, tx: DocumentTransaction, signer_ids: List[UUID]) -> StatusView:
        snapshot = await tx.snapshot()
        if snapshot.is_initialized:
            raise AlreadyInitializedError(
                f"Document {tx.document_id} already has a signing sequence",
                document_id=tx.document_id,
            )

        entries = [
            SequenceEntryData(document_id=tx.document_id, signer_id=signer_id, position=index + 1)
            for index, signer_id in enumerate(signer_ids)
        ]
        await tx.add_sequence(entries)
        await tx.set_status(DocumentStatus.PENDING)
        return StatusView(
            document_id=tx.document_id,
            status=DocumentStatus.PENDING,
            ledger=self.projector.ledger_view(entries, []),
        )

    async def _initialize_sequence_logic(self, document_id: UUID, signer_ids: List[UUID]) -> StatusView:
        await self._require_signers(signer_ids, document_id)

        async def attempt() -> StatusView:
            async with self.store.document_transaction(document_id) as tx:
                return await self._write_sequence(tx, signer_ids)

        view = await self._with_retry(attempt, document_id)
        LOGGER.info(
            f"Initialized signing sequence for document {document_id}",
            extra={"signer_count": len(signer_ids)},
        )
        await self._emit(SigningEvent(
            event_type=SigningEventType.SEQUENCE_INITIALIZED,
            document_id=document_id,
            status=view.status,
        ))
        return view

    async def _open_workflow_logic(
        self, title: str, content_ref: str, signer_ids: List[UUID]
    ) -> Tuple[DocumentRef, StatusView]:
        await self._require_signers(signer_ids)

        async def attempt() -> Tuple[DocumentRef, StatusView]:
            async with self.store.new_document_transaction(title, content_ref) as tx:
                view = await self._write_sequence(tx, signer_ids)
                snapshot = await tx.snapshot()
                return snapshot.document, view

        document, view = await self._with_retry(attempt)
        LOGGER.info(
            f"Created document {document.id} with a signing sequence",
            extra={"signer_count": len(signer_ids)},
        )
        await self._emit(SigningEvent(
            event_type=SigningEventType.SEQUENCE_INITIALIZED,
            document_id=document.id,
            status=view.status,
        ))
        return document, view

    def _check_eligibility(self, snapshot: DocumentSnapshot, signer_id: UUID) -> int:
        """Run the preconditions in order and return the signer's position."""
        document_id = snapshot.document.id
        position = snapshot.position_of(signer_id)
        if position is None:
            raise SignerNotInSequenceError(
                f"Signer {signer_id} is not part of the signing sequence of document {document_id}",
                document_id=document_id,
                signer_id=signer_id,
            )

        status = self.projector.project(snapshot.entries, snapshot.records)
        if status.is_terminal:
            raise WorkflowClosedError(
                f"Document {document_id} is already {status.value}",
                document_id=document_id,
                signer_id=signer_id,
            )

        if snapshot.terminal_record_for(signer_id) is not None:
            raise AlreadyActedError(
                f"Signer {signer_id} has already acted on document {document_id}",
                document_id=document_id,
                signer_id=signer_id,
            )

        completed_prefix = self.projector.completed_prefix(snapshot.entries, snapshot.records)
        if completed_prefix < position - 1:
            raise OutOfTurnError(
                f"Signer {signer_id} is at position {position}; "
                f"position {completed_prefix + 1} has not completed yet",
                document_id=document_id,
                signer_id=signer_id,
            )

        return position

    async def _request_signature_logic(
        self, document_id: UUID, signer_id: UUID, decision: SignatureOutcome
    ) -> StatusView:

        async def attempt() -> Tuple[StatusView, int]:
            async with self.store.document_transaction(document_id) as tx:
                snapshot = await tx.snapshot()
                position = self._check_eligibility(snapshot, signer_id)

                record = SignatureRecordData(
                    document_id=document_id,
                    signer_id=signer_id,
                    position=position,
                    outcome=decision,
                )
                records = snapshot.records + [record]
                if not self.projector.has_contiguous_prefix(snapshot.entries, records):
                    raise AppError(f"Completed positions of document {document_id} would not be contiguous")

                await tx.append_record(record)
                status = self.projector.project(snapshot.entries, records)
                await tx.set_status(status)
                return (
                    StatusView(
                        document_id=document_id,
                        status=status,
                        ledger=self.projector.ledger_view(snapshot.entries, records),
                    ),
                    position,
                )

        try:
            view, position = await self._with_retry(attempt, document_id)
        except SigningError as e:
            LOGGER.info(
                f"Signature request refused: {e.code}",
                extra={"document_id": str(document_id), "signer_id": str(signer_id), "reason": e.message},
            )
            raise

        LOGGER.info(
            f"Recorded {decision.value} by signer {signer_id} on document {document_id}",
            extra={"position": position, "status": view.status.value},
        )

        if view.status == DocumentStatus.REJECTED:
            event_type = SigningEventType.DOCUMENT_REJECTED
        elif view.status == DocumentStatus.COMPLETED:
            event_type = SigningEventType.DOCUMENT_COMPLETED
        else:
            event_type = SigningEventType.SIGNATURE_ACCEPTED
        await self._emit(SigningEvent(
            event_type=event_type,
            document_id=document_id,
            signer_id=signer_id,
            position=position,
            status=view.status,
        ))
        return view

    async def _get_status_logic(self, document_id: UUID) -> StatusView:
        snapshot = await self.store.read_snapshot(document_id)
        if snapshot is None:
            raise DocumentNotFoundError(f"Document {document_id} not found", document_id=document_id)
        return StatusView(
            document_id=document_id,
            status=self.projector.project(snapshot.entries, snapshot.records),
            ledger=self.projector.ledger_view(snapshot.entries, snapshot.records),
        )

    # Plumbing

    async def _with_retry(self, operation: Callable[[], Awaitable[T]], document_id: Optional[UUID] = None) -> T:
        """Run one transactional attempt, retrying contention losses.

        Business-rule errors propagate immediately; only
        ConcurrencyConflictError is retried, with exponential backoff.
        """
        for attempt in range(self.max_retries + 1):
            try:
                return await operation()
            except ConcurrencyConflictError:
                if attempt >= self.max_retries:
                    LOGGER.error(
                        "Concurrency conflict persisted after all retries",
                        extra={"document_id": str(document_id), "attempts": attempt + 1},
                    )
                    raise
                wait_time = self.retry_delay * (2 ** attempt)
                LOGGER.warning(
                    f"Concurrency conflict, retrying (attempt {attempt + 1}/{self.max_retries})",
                    extra={"document_id": str(document_id), "wait_seconds": wait_time},
                )
                await asyncio.sleep(wait_time)
        raise ConcurrencyConflictError("Retry loop exited without a result", document_id=document_id)

    async def _emit(self, event: SigningEvent) -> None:
        # The signature is committed; delivery problems must not surface as a failed call
        try:
            await self.event_sink.publish(event)
        except Exception as e:
            LOGGER.error(
                f"Failed to publish {event.event_type.value} event: {str(e)}",
                exc_info=True,
                extra={"document_id": str(event.document_id), "event_id": str(event.event_id)},
            )
