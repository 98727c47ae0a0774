"""Domain data models."""

from app.models.signing import (
    DocumentRef,
    DocumentSnapshot,
    DocumentStatus,
    LedgerEntry,
    SequenceEntryData,
    SignatureOutcome,
    SignatureRecordData,
    SignerRef,
    StatusView,
)

__all__ = [
    "DocumentRef",
    "DocumentSnapshot",
    "DocumentStatus",
    "LedgerEntry",
    "SequenceEntryData",
    "SignatureOutcome",
    "SignatureRecordData",
    "SignerRef",
    "StatusView",
]
