"""Unit tests for the PostgreSQL signing store and its repositories."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConcurrencyConflictError, DatabaseError, DocumentNotFoundError
from app.database.models import Document
from app.models.signing import DocumentStatus, SignatureOutcome, SignatureRecordData
from app.repositories.document_repository import DocumentRepository
from app.repositories.sequence_repository import SequenceRepository
from app.repositories.signature_repository import SignatureRepository
from app.repositories.signer_repository import SignerRepository
from app.services.signing.sql_store import SqlSigningStore, sqlstate_of, translate_error


class FakeDriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


def dbapi_error(sqlstate, cls=DBAPIError):
    return cls("SELECT 1", {}, FakeDriverError("driver failure", sqlstate))


class FakeContext:
    """Async context manager yielding a fixed value."""

    def __init__(self, value=None):
        self.value = value

    async def __aenter__(self):
        return self.value

    async def __aexit__(self, *exc_info):
        return False


@pytest.fixture
def mock_session():
    """Create a mock database session."""
    session = AsyncMock(spec=AsyncSession)
    session.add = Mock()
    session.flush = AsyncMock()
    session.execute = AsyncMock()
    session.begin = Mock(return_value=FakeContext())
    return session


@pytest.fixture
def sql_store(mock_session):
    return SqlSigningStore(Mock(return_value=FakeContext(mock_session)), lock_timeout_ms=250)


def scalar_result(value):
    result = Mock()
    result.scalar_one_or_none = Mock(return_value=value)
    return result


def rows_result(rows):
    result = Mock()
    result.scalars = Mock(return_value=Mock(all=Mock(return_value=rows)))
    return result


class TestTranslateError:

    @pytest.mark.parametrize("sqlstate", ["40001", "40P01", "55P03", "23505"])
    def test_contention_states_are_conflicts(self, sqlstate):
        error = translate_error(dbapi_error(sqlstate), uuid4())
        assert isinstance(error, ConcurrencyConflictError)
        assert error.retryable

    def test_integrity_error_is_conflict(self):
        error = translate_error(dbapi_error(None, cls=IntegrityError))
        assert isinstance(error, ConcurrencyConflictError)

    def test_other_failures_are_database_errors(self):
        error = translate_error(dbapi_error("08006", cls=OperationalError))
        assert isinstance(error, DatabaseError)

    def test_sqlstate_falls_back_to_pgcode(self):
        orig = Exception("psycopg style")
        orig.pgcode = "40001"
        assert sqlstate_of(DBAPIError("SELECT 1", {}, orig)) == "40001"


class TestSqlSigningStore:

    @pytest.mark.asyncio
    async def test_transaction_sets_lock_timeout_then_locks_row(self, sql_store, mock_session):
        mock_session.execute.side_effect = [Mock(), scalar_result(None)]

        with pytest.raises(DocumentNotFoundError):
            async with sql_store.document_transaction(uuid4()):
                pass

        first_statement = mock_session.execute.call_args_list[0].args[0]
        assert str(first_statement) == "SET LOCAL lock_timeout = 250"
        locking_select = mock_session.execute.call_args_list[1].args[0]
        assert locking_select._for_update_arg is not None

    @pytest.mark.asyncio
    async def test_lock_timeout_surfaces_as_conflict(self, sql_store, mock_session):
        mock_session.execute.side_effect = [Mock(), dbapi_error("55P03", cls=OperationalError)]

        with pytest.raises(ConcurrencyConflictError):
            async with sql_store.document_transaction(uuid4()):
                pass

    @pytest.mark.asyncio
    async def test_locked_document_is_yielded(self, sql_store, mock_session):
        document = Document(
            id=uuid4(),
            title="Lease",
            content_ref="s3://docs/lease.pdf",
            status=DocumentStatus.PENDING.value,
        )
        mock_session.execute.side_effect = [Mock(), scalar_result(document)]

        async with sql_store.document_transaction(document.id) as tx:
            assert tx.document_id == document.id

    @pytest.mark.asyncio
    async def test_read_snapshot_uses_read_only_repeatable_read(self, sql_store, mock_session):
        document = Document(
            id=uuid4(),
            title="Lease",
            content_ref="s3://docs/lease.pdf",
            status=DocumentStatus.IN_PROGRESS.value,
        )
        signer_id = uuid4()
        entry = Mock(document_id=document.id, signer_id=signer_id, position=1)
        record = Mock(
            id=uuid4(),
            document_id=document.id,
            signer_id=signer_id,
            position=1,
            outcome="completed",
            recorded_at=None,
        )
        mock_session.execute.side_effect = [
            scalar_result(document),
            rows_result([entry]),
            rows_result([record]),
        ]

        snapshot = await sql_store.read_snapshot(document.id)

        mock_session.connection.assert_awaited_once_with(
            execution_options={"isolation_level": "REPEATABLE READ", "postgresql_readonly": True}
        )
        mock_session.begin.assert_not_called()
        assert all(
            call.args[0]._for_update_arg is None for call in mock_session.execute.call_args_list
        )
        assert snapshot.document.status == DocumentStatus.IN_PROGRESS
        assert [e.signer_id for e in snapshot.entries] == [signer_id]
        assert snapshot.records[0].outcome == SignatureOutcome.COMPLETED

    @pytest.mark.asyncio
    async def test_read_snapshot_of_unknown_document(self, sql_store, mock_session):
        mock_session.execute.side_effect = [scalar_result(None)]

        assert await sql_store.read_snapshot(uuid4()) is None
        assert mock_session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_health_check_without_client(self, sql_store):
        assert await sql_store.health_check() == {"status": "healthy", "backend": "postgres"}


class TestRepositories:

    @pytest.mark.asyncio
    async def test_update_status_flushes(self, mock_session):
        document = Document(id=uuid4(), title="Lease", content_ref="s3://docs/lease.pdf", status="pending")

        await DocumentRepository(mock_session).update_status(document, DocumentStatus.IN_PROGRESS)

        assert document.status == "in_progress"
        mock_session.flush.assert_awaited_once()
        mock_session.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_append_adds_one_row(self, mock_session):
        record = SignatureRecordData(uuid4(), uuid4(), 1, SignatureOutcome.COMPLETED)

        stored = await SignatureRepository(mock_session).append(record)

        mock_session.add.assert_called_once()
        assert stored.outcome == "completed"
        assert stored.id == record.id

    @pytest.mark.asyncio
    async def test_sequence_rows_become_entries(self, mock_session):
        document_id, signer_id = uuid4(), uuid4()
        mock_session.execute.return_value = rows_result(
            [Mock(document_id=document_id, signer_id=signer_id, position=1)]
        )

        entries = await SequenceRepository(mock_session).list_for_document(document_id)

        assert [(e.signer_id, e.position) for e in entries] == [(signer_id, 1)]

    @pytest.mark.asyncio
    async def test_existing_ids_short_circuits_on_empty_input(self, mock_session):
        assert await SignerRepository(mock_session).existing_ids([]) == set()
        mock_session.execute.assert_not_called()

    def test_ledger_repository_is_append_only(self):
        assert hasattr(SignatureRepository, "append")
        assert not hasattr(SignatureRepository, "update")
        assert not hasattr(SignatureRepository, "delete")
