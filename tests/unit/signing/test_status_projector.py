"""Tests for StatusProjector."""

from uuid import uuid4

import pytest

from app.models.signing import (
    DocumentStatus,
    SequenceEntryData,
    SignatureOutcome,
    SignatureRecordData,
)
from app.services.signing.status_projector import StatusProjector


@pytest.fixture
def document_id():
    return uuid4()


@pytest.fixture
def signers():
    return [uuid4(), uuid4(), uuid4()]


@pytest.fixture
def entries(document_id, signers):
    return [
        SequenceEntryData(document_id=document_id, signer_id=signer_id, position=index + 1)
        for index, signer_id in enumerate(signers)
    ]


def record(document_id, signer_id, position, outcome):
    return SignatureRecordData(
        document_id=document_id, signer_id=signer_id, position=position, outcome=outcome
    )


class TestProject:
    """Aggregate status derivation."""

    def test_no_records_is_pending(self, entries):
        assert StatusProjector.project(entries, []) == DocumentStatus.PENDING

    def test_no_sequence_is_pending(self):
        assert StatusProjector.project([], []) == DocumentStatus.PENDING

    def test_partial_completion_is_in_progress(self, document_id, signers, entries):
        records = [record(document_id, signers[0], 1, SignatureOutcome.COMPLETED)]
        assert StatusProjector.project(entries, records) == DocumentStatus.IN_PROGRESS

    def test_pending_record_alone_is_in_progress(self, document_id, signers, entries):
        records = [record(document_id, signers[0], 1, SignatureOutcome.PENDING)]
        assert StatusProjector.project(entries, records) == DocumentStatus.IN_PROGRESS

    def test_all_completed_is_completed(self, document_id, signers, entries):
        records = [
            record(document_id, signer_id, index + 1, SignatureOutcome.COMPLETED)
            for index, signer_id in enumerate(signers)
        ]
        assert StatusProjector.project(entries, records) == DocumentStatus.COMPLETED

    def test_any_rejection_wins(self, document_id, signers, entries):
        records = [
            record(document_id, signers[0], 1, SignatureOutcome.COMPLETED),
            record(document_id, signers[1], 2, SignatureOutcome.REJECTED),
        ]
        assert StatusProjector.project(entries, records) == DocumentStatus.REJECTED


class TestLedgerView:
    """Per-position audit lines."""

    def test_ordered_by_position_with_null_outcomes(self, signers, entries):
        ledger = StatusProjector.ledger_view(list(reversed(entries)), [])

        assert [line.position for line in ledger] == [1, 2, 3]
        assert [line.signer_id for line in ledger] == signers
        assert all(line.outcome is None and line.recorded_at is None for line in ledger)

    def test_terminal_record_beats_later_pending(self, document_id, signers, entries):
        records = [
            record(document_id, signers[0], 1, SignatureOutcome.COMPLETED),
            record(document_id, signers[0], 1, SignatureOutcome.PENDING),
        ]
        ledger = StatusProjector.ledger_view(entries, records)

        assert ledger[0].outcome == SignatureOutcome.COMPLETED
        assert ledger[1].outcome is None

    def test_pending_replaced_by_terminal(self, document_id, signers, entries):
        records = [
            record(document_id, signers[0], 1, SignatureOutcome.PENDING),
            record(document_id, signers[0], 1, SignatureOutcome.REJECTED),
        ]
        ledger = StatusProjector.ledger_view(entries, records)

        assert ledger[0].outcome == SignatureOutcome.REJECTED


class TestCompletedPrefix:
    """Contiguity of the Completed positions."""

    def test_empty_prefix(self, entries):
        assert StatusProjector.completed_prefix(entries, []) == 0
        assert StatusProjector.has_contiguous_prefix(entries, [])

    def test_prefix_of_two(self, document_id, signers, entries):
        records = [
            record(document_id, signers[0], 1, SignatureOutcome.COMPLETED),
            record(document_id, signers[1], 2, SignatureOutcome.COMPLETED),
        ]
        assert StatusProjector.completed_prefix(entries, records) == 2
        assert StatusProjector.has_contiguous_prefix(entries, records)

    def test_gap_is_detected(self, document_id, signers, entries):
        records = [
            record(document_id, signers[0], 1, SignatureOutcome.COMPLETED),
            record(document_id, signers[2], 3, SignatureOutcome.COMPLETED),
        ]
        assert StatusProjector.completed_prefix(entries, records) == 1
        assert not StatusProjector.has_contiguous_prefix(entries, records)
