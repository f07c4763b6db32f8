"""Tests for kitchen ticket advances and how they fold into order status."""

import pytest
from sqlalchemy.orm import Session

from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.rbac import ActorContext, UserRole
from app.models.order import OrderStatus, TicketStatus
from app.services.cart_diff import CartLine
from app.services.kitchen_service import KitchenService
from app.services.notification_service import EventOutbox
from app.services.order_service import CartAction, OrderService
from app.services.status_reconciler import OrderStatusReconciler


@pytest.fixture
def dispatched(db_session: Session, sink, waiter, table, menu):
    """Order on table T1 with two tickets: paneer x2, then naan x1."""
    service = OrderService(db_session, sink)
    service.save_cart(waiter, table.id, [CartLine("item-paneer", 2)], action=CartAction.DISPATCH)
    result = service.save_cart(
        waiter, table.id, [CartLine("item-paneer", 2), CartLine("item-naan", 1)], action=CartAction.DISPATCH
    )
    sink.events.clear()
    return result.order


class TestAdvanceTicket:
    def test_first_preparing_ticket_moves_order_to_preparing(self, db_session, sink, kitchen, dispatched):
        first, second = dispatched.tickets

        ticket = KitchenService(db_session, sink).advance_ticket(kitchen, first.id, TicketStatus.PREPARING)

        assert ticket.status == TicketStatus.PREPARING
        assert ticket.started_at is not None
        assert dispatched.status == OrderStatus.PREPARING
        assert second.status == TicketStatus.PENDING
        assert sink.statuses("ticket") == ["PREPARING"]
        assert sink.statuses() == ["PREPARING"]

    def test_order_ready_only_when_all_tickets_ready(self, db_session, sink, kitchen, dispatched):
        """Two tickets: first READY keeps the order PREPARING, second READY promotes it."""
        kitchen_service = KitchenService(db_session, sink)
        first, second = dispatched.tickets

        kitchen_service.advance_ticket(kitchen, first.id, TicketStatus.PREPARING)
        kitchen_service.advance_ticket(kitchen, first.id, TicketStatus.READY)
        assert dispatched.status == OrderStatus.PREPARING

        kitchen_service.advance_ticket(kitchen, second.id, TicketStatus.PREPARING)
        kitchen_service.advance_ticket(kitchen, second.id, TicketStatus.READY)

        assert dispatched.status == OrderStatus.READY
        assert second.ready_at is not None
        assert sink.statuses() == ["PREPARING", "READY"]

    def test_pending_cannot_jump_to_ready(self, db_session, sink, kitchen, dispatched):
        first = dispatched.tickets[0]
        with pytest.raises(ConflictError):
            KitchenService(db_session, sink).advance_ticket(kitchen, first.id, TicketStatus.READY)

        db_session.expire_all()
        assert first.status == TicketStatus.PENDING
        assert sink.events == []

    def test_ready_ticket_is_final(self, db_session, sink, kitchen, dispatched):
        kitchen_service = KitchenService(db_session, sink)
        first = dispatched.tickets[0]
        kitchen_service.advance_ticket(kitchen, first.id, TicketStatus.PREPARING)
        kitchen_service.advance_ticket(kitchen, first.id, TicketStatus.READY)

        with pytest.raises(ConflictError):
            kitchen_service.advance_ticket(kitchen, first.id, TicketStatus.PREPARING)

    def test_kitchen_cannot_cancel_or_reset(self, db_session, sink, kitchen, dispatched):
        first = dispatched.tickets[0]
        for target in (TicketStatus.CANCELLED, TicketStatus.PENDING):
            with pytest.raises(ValidationError):
                KitchenService(db_session, sink).advance_ticket(kitchen, first.id, target)

    def test_bill_request_is_not_overridden_by_ready(self, db_session, sink, waiter, kitchen, table, dispatched):
        OrderService(db_session, sink).save_cart(
            waiter, table.id, [CartLine("item-paneer", 2), CartLine("item-naan", 1)], action=CartAction.BILL
        )
        kitchen_service = KitchenService(db_session, sink)
        for ticket in dispatched.tickets:
            kitchen_service.advance_ticket(kitchen, ticket.id, TicketStatus.PREPARING)
            kitchen_service.advance_ticket(kitchen, ticket.id, TicketStatus.READY)

        assert dispatched.status == OrderStatus.BILL_REQUESTED

    def test_new_round_after_ready(self, db_session, sink, waiter, kitchen, table, dispatched):
        """A dispatch on a READY order re-enters KOT_SENT and READY needs the new ticket too."""
        kitchen_service = KitchenService(db_session, sink)
        for ticket in dispatched.tickets:
            kitchen_service.advance_ticket(kitchen, ticket.id, TicketStatus.PREPARING)
            kitchen_service.advance_ticket(kitchen, ticket.id, TicketStatus.READY)
        assert dispatched.status == OrderStatus.READY

        result = OrderService(db_session, sink).save_cart(
            waiter,
            table.id,
            [CartLine("item-paneer", 2), CartLine("item-naan", 2)],
            action=CartAction.DISPATCH,
        )
        assert result.order.status == OrderStatus.KOT_SENT

        kitchen_service.advance_ticket(kitchen, result.ticket.id, TicketStatus.PREPARING)
        kitchen_service.advance_ticket(kitchen, result.ticket.id, TicketStatus.READY)
        assert result.order.status == OrderStatus.READY

    def test_waiter_cannot_advance(self, db_session, sink, waiter, dispatched):
        with pytest.raises(AuthorizationError):
            KitchenService(db_session, sink).advance_ticket(waiter, dispatched.tickets[0].id, TicketStatus.PREPARING)

    def test_other_branch_kitchen_rejected(self, db_session, sink, dispatched, other_branch):
        outsider = ActorContext(staff_id="chef-9", role=UserRole.KITCHEN, branch_id=other_branch.id)
        with pytest.raises(AuthorizationError):
            KitchenService(db_session, sink).advance_ticket(outsider, dispatched.tickets[0].id, TicketStatus.PREPARING)

    def test_unknown_ticket(self, db_session, sink, kitchen, dispatched):
        with pytest.raises(NotFoundError):
            KitchenService(db_session, sink).advance_ticket(kitchen, "missing", TicketStatus.PREPARING)


class TestListTickets:
    def test_lists_pending_tickets_newest_first(self, db_session, sink, kitchen, dispatched):
        tickets = KitchenService(db_session, sink).list_tickets(kitchen)
        assert [t.sequence for t in tickets] == [2, 1]

    def test_filters_by_status(self, db_session, sink, kitchen, dispatched):
        kitchen_service = KitchenService(db_session, sink)
        kitchen_service.advance_ticket(kitchen, dispatched.tickets[0].id, TicketStatus.PREPARING)

        preparing = kitchen_service.list_tickets(kitchen, TicketStatus.PREPARING)
        pending = kitchen_service.list_tickets(kitchen)

        assert [t.sequence for t in preparing] == [1]
        assert [t.sequence for t in pending] == [2]

    def test_only_kitchen_lists(self, db_session, sink, cashier, dispatched):
        with pytest.raises(AuthorizationError):
            KitchenService(db_session, sink).list_tickets(cashier)


class TestReconciler:
    def test_terminal_order_rejects_transitions(self, db_session, sink, waiter, cashier, table, menu):
        service = OrderService(db_session, sink)
        order = service.save_cart(waiter, table.id, [CartLine("item-paneer", 1)]).order
        service.cancel_order(cashier, order.id)

        reconciler = OrderStatusReconciler(EventOutbox())
        with pytest.raises(ConflictError):
            reconciler.transition(order, OrderStatus.KOT_SENT)

    def test_same_status_is_noop(self, db_session, sink, waiter, table, menu):
        order = OrderService(db_session, sink).save_cart(waiter, table.id, [CartLine("item-paneer", 1)]).order
        outbox = EventOutbox()

        OrderStatusReconciler(outbox).transition(order, OrderStatus.PENDING)

        assert outbox.events == []

    def test_pending_cannot_skip_to_ready(self, db_session, sink, waiter, table, menu):
        order = OrderService(db_session, sink).save_cart(waiter, table.id, [CartLine("item-paneer", 1)]).order
        with pytest.raises(ConflictError):
            OrderStatusReconciler(EventOutbox()).transition(order, OrderStatus.READY)
