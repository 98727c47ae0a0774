"""Wiring of the signing store, event sink and services for FastAPI."""

from functools import lru_cache

from app.core.config import settings
from app.services.directory_service import DirectoryService
from app.services.signing.events import CompositeEventSink, EventSink, LoggingEventSink, WebhookEventSink
from app.services.signing.memory_store import InMemorySigningStore
from app.services.signing.sequencing_engine import SequencingEngine
from app.services.signing.store import SigningStore
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


def build_signing_store() -> SigningStore:
    """Create the store selected by SIGNING_STORE_BACKEND."""
    if settings.signing.store_backend == "memory":
        LOGGER.info("Using in-memory signing store")
        return InMemorySigningStore(lock_timeout=settings.signing.lock_timeout_ms / 1000)

    from app.core.database import async_session_maker, db_client
    from app.services.signing.sql_store import SqlSigningStore

    LOGGER.info("Using PostgreSQL signing store")
    return SqlSigningStore(
        async_session_maker,
        lock_timeout_ms=settings.signing.lock_timeout_ms,
        db_client=db_client,
    )


def build_event_sink() -> EventSink:
    """Logging sink, plus a webhook sink when a URL is configured."""
    sinks = [LoggingEventSink()]
    if settings.signing.event_webhook_url:
        sinks.append(
            WebhookEventSink(
                settings.signing.event_webhook_url,
                timeout=settings.signing.event_webhook_timeout,
            )
        )
    return sinks[0] if len(sinks) == 1 else CompositeEventSink(sinks)


@lru_cache
def get_signing_store() -> SigningStore:
    return build_signing_store()


@lru_cache
def get_event_sink() -> EventSink:
    return build_event_sink()


def get_sequencing_engine() -> SequencingEngine:
    return SequencingEngine(
        get_signing_store(),
        event_sink=get_event_sink(),
        max_retries=settings.signing.max_retries,
        retry_delay=settings.signing.retry_delay,
    )


def get_directory_service() -> DirectoryService:
    return DirectoryService(get_signing_store(), get_sequencing_engine())
