"""Signature sequencing: store boundary, status projection, engine and events."""

from app.services.signing.events import (
    CompositeEventSink,
    EventSink,
    InMemoryEventSink,
    LoggingEventSink,
    SigningEvent,
    SigningEventType,
    WebhookEventSink,
)
from app.services.signing.memory_store import InMemorySigningStore
from app.services.signing.sequencing_engine import SequencingEngine, parse_decision
from app.services.signing.sql_store import SqlSigningStore
from app.services.signing.status_projector import StatusProjector
from app.services.signing.store import DocumentTransaction, SigningStore

__all__ = [
    "CompositeEventSink",
    "DocumentTransaction",
    "EventSink",
    "InMemoryEventSink",
    "InMemorySigningStore",
    "LoggingEventSink",
    "SequencingEngine",
    "SigningEvent",
    "SigningEventType",
    "SigningStore",
    "SqlSigningStore",
    "StatusProjector",
    "WebhookEventSink",
    "parse_decision",
]
