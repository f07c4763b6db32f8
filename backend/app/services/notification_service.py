"""Status-change notifications for order and ticket transitions.

Engine operations collect :class:`StatusEvent` records in an
:class:`EventOutbox` while they run, and the outbox is flushed to a
:class:`NotificationSink` only after the database transaction commits. A
failing sink is logged and never undoes the committed state change.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

import httpx
from fastapi import Depends

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusEvent:
    """One committed status change.

    ``subject`` is ``"order"``, ``"ticket"`` or ``"marketplace"``;
    ``ticket_id`` is set only for ticket events.
    """

    order_id: str
    new_status: str
    timestamp: datetime
    subject: str = "order"
    ticket_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject": self.subject,
            "order_id": self.order_id,
            "ticket_id": self.ticket_id,
            "new_status": self.new_status,
            "timestamp": self.timestamp.isoformat(),
        }


class NotificationSink(ABC):
    """Destination for committed status events (kitchen screens, waiter apps)."""

    @abstractmethod
    def publish(self, event: StatusEvent) -> None:
        ...


class LoggingNotificationSink(NotificationSink):
    """Default sink: writes each event to the application log."""

    def publish(self, event: StatusEvent) -> None:
        logger.info(
            "Status event: %s %s -> %s",
            event.subject,
            event.ticket_id or event.order_id,
            event.new_status,
        )


class WebhookNotificationSink(NotificationSink):
    """POSTs each event as JSON to a configured URL.

    One pooled client is kept for the sink's lifetime; ``timeout`` bounds
    each delivery attempt.
    """

    def __init__(self, url: str, timeout: float = 5.0, transport: Optional[httpx.BaseTransport] = None):
        self.url = url
        self.client = httpx.Client(timeout=timeout, transport=transport)

    def publish(self, event: StatusEvent) -> None:
        response = self.client.post(self.url, json=event.to_dict())
        response.raise_for_status()

    def close(self) -> None:
        self.client.close()


@dataclass
class EventOutbox:
    """Events produced by one engine operation, pending its commit."""

    events: List[StatusEvent] = field(default_factory=list)

    def add(self, event: StatusEvent) -> None:
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()

    def flush(self, sink: NotificationSink) -> None:
        """Publish and drop all pending events. Sink failures are only logged."""
        events, self.events = self.events, []
        for event in events:
            try:
                sink.publish(event)
            except Exception as e:
                logger.warning(
                    "Notification for order %s (%s) failed: %s",
                    event.order_id,
                    event.new_status,
                    e,
                )


# One webhook sink per configured URL, shared by every request
_webhook_sinks: Dict[str, WebhookNotificationSink] = {}


def get_notification_sink() -> NotificationSink:
    """Sink selected by settings: webhook when a URL is configured, else logging."""
    url = settings.notification_webhook_url
    if not url:
        return LoggingNotificationSink()
    if url not in _webhook_sinks:
        _webhook_sinks[url] = WebhookNotificationSink(url, timeout=settings.notification_timeout_seconds)
    return _webhook_sinks[url]


def close_notification_sinks() -> None:
    for sink in _webhook_sinks.values():
        sink.close()
    _webhook_sinks.clear()


Sink = Annotated[NotificationSink, Depends(get_notification_sink)]
