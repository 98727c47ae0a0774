"""Tests for InMemorySigningStore transaction semantics."""

from uuid import uuid4

import pytest

from app.core.exceptions import ConcurrencyConflictError, DocumentNotFoundError
from app.models.signing import (
    DocumentStatus,
    SequenceEntryData,
    SignatureOutcome,
    SignatureRecordData,
)
from app.services.signing.memory_store import InMemorySigningStore


@pytest.mark.asyncio
async def test_committed_writes_are_visible(store):
    signer = await store.create_signer("Alice", "alice@example.com")
    document = await store.create_document("Lease", "s3://docs/lease.pdf")

    async with store.document_transaction(document.id) as tx:
        await tx.add_sequence([SequenceEntryData(document.id, signer.id, 1)])
        await tx.set_status(DocumentStatus.PENDING)

    snapshot = await store.read_snapshot(document.id)
    assert [entry.signer_id for entry in snapshot.entries] == [signer.id]


@pytest.mark.asyncio
async def test_snapshot_sees_staged_writes(store):
    signer = await store.create_signer("Alice")
    document = await store.create_document("Lease", "s3://docs/lease.pdf")

    async with store.document_transaction(document.id) as tx:
        await tx.add_sequence([SequenceEntryData(document.id, signer.id, 1)])
        await tx.set_status(DocumentStatus.IN_PROGRESS)
        snapshot = await tx.snapshot()

        assert snapshot.is_initialized
        assert snapshot.document.status == DocumentStatus.IN_PROGRESS
        assert (await store.read_snapshot(document.id)).entries == []


@pytest.mark.asyncio
async def test_exception_discards_staged_writes(store):
    signer = await store.create_signer("Alice")
    document = await store.create_document("Lease", "s3://docs/lease.pdf")

    with pytest.raises(RuntimeError):
        async with store.document_transaction(document.id) as tx:
            await tx.add_sequence([SequenceEntryData(document.id, signer.id, 1)])
            raise RuntimeError("boom")

    snapshot = await store.read_snapshot(document.id)
    assert snapshot.entries == []
    assert store._locks == {}


@pytest.mark.asyncio
async def test_unknown_document(store):
    with pytest.raises(DocumentNotFoundError):
        async with store.document_transaction(uuid4()):
            pass

    assert await store.read_snapshot(uuid4()) is None


@pytest.mark.asyncio
async def test_lock_timeout_is_a_conflict(hold_document):
    store = InMemorySigningStore(lock_timeout=0.01)
    document = await store.create_document("Lease", "s3://docs/lease.pdf")

    async with hold_document(store, document.id):
        with pytest.raises(ConcurrencyConflictError):
            async with store.document_transaction(document.id):
                pass

        assert store._lock_users[document.id] == 1

    assert store._locks == {}


@pytest.mark.asyncio
async def test_unknown_documents_leave_no_locks(engine, store, seed_signers):
    (signer_id,) = await seed_signers("Alice")

    for _ in range(50):
        with pytest.raises(DocumentNotFoundError):
            await engine.request_signature(uuid4(), signer_id, "completed")

    assert store._locks == {}
    assert store._lock_users == {}


@pytest.mark.asyncio
async def test_locks_are_dropped_after_commit(engine, store, seed_signers):
    first, second = await seed_signers("Alice", "Bob")
    document, _ = await engine.open_workflow("Lease", "s3://docs/lease.pdf", [first, second])

    await engine.request_signature(document.id, first, "completed")
    await engine.get_status(document.id)

    assert store._locks == {}
    assert store._lock_users == {}


@pytest.mark.asyncio
async def test_second_terminal_record_violates_uniqueness(store):
    signer = await store.create_signer("Alice")
    document = await store.create_document("Lease", "s3://docs/lease.pdf")

    def terminal(outcome):
        return SignatureRecordData(document.id, signer.id, 1, outcome)

    async with store.document_transaction(document.id) as tx:
        await tx.add_sequence([SequenceEntryData(document.id, signer.id, 1)])
        await tx.append_record(terminal(SignatureOutcome.COMPLETED))

    with pytest.raises(ConcurrencyConflictError):
        async with store.document_transaction(document.id) as tx:
            await tx.append_record(terminal(SignatureOutcome.REJECTED))

    assert len(store._records[document.id]) == 1


@pytest.mark.asyncio
async def test_pending_records_are_not_unique(store):
    signer = await store.create_signer("Alice")
    document = await store.create_document("Lease", "s3://docs/lease.pdf")

    async with store.document_transaction(document.id) as tx:
        await tx.add_sequence([SequenceEntryData(document.id, signer.id, 1)])
        await tx.append_record(SignatureRecordData(document.id, signer.id, 1, SignatureOutcome.PENDING))
        await tx.append_record(SignatureRecordData(document.id, signer.id, 1, SignatureOutcome.PENDING))

    assert len(store._records[document.id]) == 2


@pytest.mark.asyncio
async def test_duplicate_position_violates_uniqueness(store):
    first = await store.create_signer("Alice")
    second = await store.create_signer("Bob")
    document = await store.create_document("Lease", "s3://docs/lease.pdf")

    with pytest.raises(ConcurrencyConflictError):
        async with store.document_transaction(document.id) as tx:
            await tx.add_sequence([
                SequenceEntryData(document.id, first.id, 1),
                SequenceEntryData(document.id, second.id, 1),
            ])


@pytest.mark.asyncio
async def test_new_document_transaction_publishes_on_commit(store):
    async with store.new_document_transaction("Memo", "s3://docs/memo.pdf") as tx:
        document_id = tx.document_id
        assert await store.get_document(document_id) is None

    document = await store.get_document(document_id)
    assert document.title == "Memo"
    assert store.backend == "memory"
