"""Domain events emitted by the sequencing engine and their sinks."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence
from uuid import UUID, uuid4

import httpx
from pydantic import BaseModel, Field

from app.models.signing import DocumentStatus
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SigningEventType(str, Enum):
    SEQUENCE_INITIALIZED = "sequence.initialized"
    SIGNATURE_ACCEPTED = "signature.accepted"
    DOCUMENT_COMPLETED = "document.completed"
    DOCUMENT_REJECTED = "document.rejected"


class SigningEvent(BaseModel):
    """One event per successful mutating engine call, published after commit."""

    event_id: UUID = Field(default_factory=uuid4)
    event_type: SigningEventType
    document_id: UUID
    signer_id: Optional[UUID] = None
    position: Optional[int] = None
    status: DocumentStatus
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EventSink(ABC):
    """Downstream consumer of signing events."""

    @abstractmethod
    async def publish(self, event: SigningEvent) -> None:
        pass

    async def close(self) -> None:
        return None


class LoggingEventSink(EventSink):
    """Writes every event to the application log."""

    async def publish(self, event: SigningEvent) -> None:
        LOGGER.info(
            f"Signing event {event.event_type.value} for document {event.document_id}",
            extra={
                "event_id": str(event.event_id),
                "signer_id": str(event.signer_id) if event.signer_id else None,
                "position": event.position,
                "status": event.status.value,
            },
        )


class InMemoryEventSink(EventSink):
    """Collects events in a list."""

    def __init__(self):
        self.events: List[SigningEvent] = []

    async def publish(self, event: SigningEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: SigningEventType) -> List[SigningEvent]:
        return [event for event in self.events if event.event_type == event_type]


class WebhookEventSink(EventSink):
    """POSTs each event as JSON to a configured URL."""

    def __init__(self, url: str, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def publish(self, event: SigningEvent) -> None:
        response = await self._client.post(self.url, json=event.model_dump(mode="json"))
        response.raise_for_status()
        LOGGER.debug(
            "Delivered signing event",
            extra={"event_id": str(event.event_id), "status_code": response.status_code},
        )

    async def close(self) -> None:
        await self._client.aclose()


class CompositeEventSink(EventSink):
    """Fans one event out to several sinks.

    A failing sink does not prevent delivery to the others; the first
    failure is re-raised once every sink has been tried.
    """

    def __init__(self, sinks: Sequence[EventSink]):
        self.sinks = list(sinks)

    async def publish(self, event: SigningEvent) -> None:
        first_error: Optional[Exception] = None
        for sink in self.sinks:
            try:
                await sink.publish(event)
            except Exception as e:
                LOGGER.error(
                    f"Event sink {sink.__class__.__name__} failed: {str(e)}",
                    extra={"event_id": str(event.event_id)},
                )
                first_error = first_error or e
        if first_error is not None:
            raise first_error

    async def close(self) -> None:
        for sink in self.sinks:
            await sink.close()
