"""Document status projection.

The aggregate status is never stored independently of the ledger: it is a
pure function of the sequence and the signature records, recomputed inside
the same transaction as every ledger write.
"""

from typing import Dict, List, Sequence

from app.models.signing import (
    DocumentStatus,
    LedgerEntry,
    SequenceEntryData,
    SignatureOutcome,
    SignatureRecordData,
)


class StatusProjector:
    """Derives aggregate status and the audit ledger from raw rows."""

    @staticmethod
    def project(
        entries: Sequence[SequenceEntryData],
        records: Sequence[SignatureRecordData],
    ) -> DocumentStatus:
        """Compute the aggregate status.

        Rejected if any record is Rejected; Completed if every position has
        a Completed record; InProgress if any Completed or Pending record
        exists; Pending otherwise (including a document with no sequence).

        Args:
            entries: The document's sequence entries
            records: The document's signature records

        Returns:
            DocumentStatus
        """
        if any(record.outcome == SignatureOutcome.REJECTED for record in records):
            return DocumentStatus.REJECTED

        completed_signers = {
            record.signer_id for record in records if record.outcome == SignatureOutcome.COMPLETED
        }
        if entries and all(entry.signer_id in completed_signers for entry in entries):
            return DocumentStatus.COMPLETED

        if records:
            return DocumentStatus.IN_PROGRESS

        return DocumentStatus.PENDING

    @staticmethod
    def ledger_view(
        entries: Sequence[SequenceEntryData],
        records: Sequence[SignatureRecordData],
    ) -> List[LedgerEntry]:
        """Build the ordered per-signer ledger.

        A position shows its terminal record when one exists, otherwise its
        most recent Pending record, otherwise no outcome.
        """
        latest: Dict[object, SignatureRecordData] = {}
        for record in records:
            current = latest.get(record.signer_id)
            if current is not None and current.outcome.is_terminal:
                continue
            latest[record.signer_id] = record

        ledger = []
        for entry in sorted(entries, key=lambda e: e.position):
            record = latest.get(entry.signer_id)
            ledger.append(
                LedgerEntry(
                    position=entry.position,
                    signer_id=entry.signer_id,
                    outcome=record.outcome if record else None,
                    recorded_at=record.recorded_at if record else None,
                )
            )
        return ledger

    @staticmethod
    def completed_prefix(
        entries: Sequence[SequenceEntryData],
        records: Sequence[SignatureRecordData],
    ) -> int:
        """Length k of the run of Completed positions 1..k."""
        completed_signers = {
            record.signer_id for record in records if record.outcome == SignatureOutcome.COMPLETED
        }
        k = 0
        for entry in sorted(entries, key=lambda e: e.position):
            if entry.signer_id not in completed_signers:
                break
            k = entry.position
        return k

    @classmethod
    def has_contiguous_prefix(
        cls,
        entries: Sequence[SequenceEntryData],
        records: Sequence[SignatureRecordData],
    ) -> bool:
        """True when the Completed positions are exactly {1..k}."""
        completed_signers = {
            record.signer_id for record in records if record.outcome == SignatureOutcome.COMPLETED
        }
        completed_count = sum(1 for entry in entries if entry.signer_id in completed_signers)
        return completed_count == cls.completed_prefix(entries, records)
