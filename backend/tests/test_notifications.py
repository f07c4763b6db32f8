"""Tests for status-change notifications and their commit boundary."""

import json
from datetime import datetime, timezone

import httpx
import pytest
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ConflictError
from app.models.order import Order
from app.services.cart_diff import CartLine
from app.services.notification_service import (
    EventOutbox, LoggingNotificationSink, NotificationSink, StatusEvent, WebhookNotificationSink,
    close_notification_sinks, get_notification_sink,
)
from app.services.order_service import CartAction, OrderService


class FailingSink(NotificationSink):
    def __init__(self):
        self.attempts = 0

    def publish(self, event: StatusEvent) -> None:
        self.attempts += 1
        raise RuntimeError("screen offline")


def make_event(**overrides) -> StatusEvent:
    fields = {
        "order_id": "order-1",
        "new_status": "KOT_SENT",
        "timestamp": datetime(2026, 1, 5, 12, 30, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return StatusEvent(**fields)


class TestEventOutbox:
    def test_flush_publishes_in_order_and_empties(self, sink):
        outbox = EventOutbox()
        outbox.add(make_event(new_status="PENDING"))
        outbox.add(make_event(new_status="KOT_SENT"))

        outbox.flush(sink)

        assert sink.statuses() == ["PENDING", "KOT_SENT"]
        assert outbox.events == []

    def test_sink_failure_is_swallowed(self):
        outbox = EventOutbox()
        outbox.add(make_event())
        outbox.add(make_event(new_status="READY"))
        failing = FailingSink()

        outbox.flush(failing)

        assert failing.attempts == 2
        assert outbox.events == []

    def test_event_dict(self):
        event = make_event(subject="ticket", ticket_id="t-1")
        assert event.to_dict() == {
            "subject": "ticket",
            "order_id": "order-1",
            "ticket_id": "t-1",
            "new_status": "KOT_SENT",
            "timestamp": "2026-01-05T12:30:00+00:00",
        }


class TestCommitBoundary:
    def test_events_published_after_commit(self, db_session: Session, sink, waiter, table, menu):
        OrderService(db_session, sink).save_cart(
            waiter, table.id, [CartLine("item-paneer", 1)], action=CartAction.DISPATCH
        )
        assert sink.statuses() == ["PENDING", "KOT_SENT"]
        assert sink.statuses("ticket") == ["PENDING"]

    def test_failed_operation_publishes_nothing(self, db_session: Session, sink, waiter, table, menu):
        service = OrderService(db_session, sink)
        service.save_cart(waiter, table.id, [CartLine("item-paneer", 1)], action=CartAction.DISPATCH)
        sink.events.clear()

        with pytest.raises(ConflictError):
            service.save_cart(waiter, table.id, [CartLine("item-paneer", 1)], action=CartAction.DISPATCH)

        assert sink.events == []
        assert service.outbox.events == []

    def test_failing_sink_does_not_undo_commit(self, db_session: Session, waiter, table, menu):
        result = OrderService(db_session, FailingSink()).save_cart(
            waiter, table.id, [CartLine("item-paneer", 1)], action=CartAction.DISPATCH
        )

        db_session.expire_all()
        assert db_session.get(Order, result.order.id).ticket_seq == 1


class TestSinks:
    def test_logging_sink(self, caplog):
        with caplog.at_level("INFO", logger="app.services.notification_service"):
            LoggingNotificationSink().publish(make_event(new_status="READY"))
        assert "READY" in caplog.text

    def test_webhook_sink_posts_json(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append((request.method, str(request.url), json.loads(request.content)))
            return httpx.Response(204)

        sink = WebhookNotificationSink("https://screens.local/events", transport=httpx.MockTransport(handler))
        sink.publish(make_event(new_status="READY"))

        method, url, body = received[0]
        assert method == "POST"
        assert url == "https://screens.local/events"
        assert body["new_status"] == "READY"
        assert body["order_id"] == "order-1"

    def test_webhook_sink_raises_on_error_status(self):
        sink = WebhookNotificationSink(
            "https://screens.local/events",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        with pytest.raises(httpx.HTTPStatusError):
            sink.publish(make_event())

    def test_webhook_failure_is_only_logged_by_outbox(self, caplog):
        outbox = EventOutbox()
        outbox.add(make_event())
        sink = WebhookNotificationSink(
            "https://screens.local/events",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )
        with caplog.at_level("WARNING", logger="app.services.notification_service"):
            outbox.flush(sink)
        assert "order-1" in caplog.text


class TestSinkSelection:
    def test_logging_sink_without_url(self, monkeypatch):
        monkeypatch.setattr(settings, "notification_webhook_url", None)
        assert isinstance(get_notification_sink(), LoggingNotificationSink)

    def test_webhook_sink_shared_across_requests(self, monkeypatch):
        monkeypatch.setattr(settings, "notification_webhook_url", "https://screens.local/events")
        try:
            first = get_notification_sink()
            assert isinstance(first, WebhookNotificationSink)
            assert get_notification_sink() is first
        finally:
            close_notification_sinks()

        assert first.client.is_closed
        assert get_notification_sink() is not first
        close_notification_sinks()

    def test_one_client_serves_every_event(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request)
            return httpx.Response(204)

        sink = WebhookNotificationSink("https://screens.local/events", transport=httpx.MockTransport(handler))
        client = sink.client
        sink.publish(make_event(new_status="PREPARING"))
        sink.publish(make_event(new_status="READY"))

        assert sink.client is client
        assert [json.loads(r.content)["new_status"] for r in received] == ["PREPARING", "READY"]
        sink.close()
