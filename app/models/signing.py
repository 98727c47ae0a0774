"""Domain types shared by the signing store, projector and engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4


class DocumentStatus(str, Enum):
    """Aggregate status of a document in the signing workflow."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentStatus.COMPLETED, DocumentStatus.REJECTED)


class SignatureOutcome(str, Enum):
    """Outcome of a signature record."""

    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (SignatureOutcome.COMPLETED, SignatureOutcome.REJECTED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DocumentRef:
    """Read-only view of a document as seen by the engine.

    Attributes:
        id: Document ID
        title: Human readable title
        content_ref: Pointer to the stored content (URL, storage path, ...)
        status: Stored aggregate status
        created_at: Creation timestamp
    """

    id: UUID
    title: str
    content_ref: str
    status: DocumentStatus = DocumentStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class SignerRef:
    """Read-only view of a signer."""

    id: UUID
    display_name: str
    contact_ref: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class SequenceEntryData:
    """One (document, signer, position) row of a signing sequence."""

    document_id: UUID
    signer_id: UUID
    position: int


@dataclass(frozen=True)
class SignatureRecordData:
    """One append-only ledger row."""

    document_id: UUID
    signer_id: UUID
    position: int
    outcome: SignatureOutcome
    recorded_at: datetime = field(default_factory=utcnow)
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class LedgerEntry:
    """Per-position audit line returned by GetStatus."""

    position: int
    signer_id: UUID
    outcome: Optional[SignatureOutcome] = None
    recorded_at: Optional[datetime] = None


@dataclass
class DocumentSnapshot:
    """Consistent read of a document's sequence and ledger.

    Entries are kept ordered by position, records by insertion order.
    """

    document: DocumentRef
    entries: List[SequenceEntryData] = field(default_factory=list)
    records: List[SignatureRecordData] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.entries = sorted(self.entries, key=lambda entry: entry.position)

    @property
    def is_initialized(self) -> bool:
        return bool(self.entries)

    def position_of(self, signer_id: UUID) -> Optional[int]:
        for entry in self.entries:
            if entry.signer_id == signer_id:
                return entry.position
        return None

    def terminal_record_for(self, signer_id: UUID) -> Optional[SignatureRecordData]:
        for record in self.records:
            if record.signer_id == signer_id and record.outcome.is_terminal:
                return record
        return None


@dataclass(frozen=True)
class StatusView:
    """Result of GetStatus: aggregate status plus the ordered ledger."""

    document_id: UUID
    status: DocumentStatus
    ledger: List[LedgerEntry]

    @property
    def completed_positions(self) -> List[int]:
        return [
            entry.position
            for entry in self.ledger
            if entry.outcome == SignatureOutcome.COMPLETED
        ]
