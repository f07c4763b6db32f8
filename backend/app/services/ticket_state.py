"""Kitchen ticket lifecycle: PENDING -> PREPARING -> READY, or CANCELLED."""

import logging
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from app.core.exceptions import ConflictError
from app.db.base import utcnow
from app.models.order import Ticket, TicketStatus
from app.services.notification_service import EventOutbox, StatusEvent
from app.services.status_reconciler import OrderStatusReconciler

logger = logging.getLogger(__name__)

TICKET_TRANSITIONS: Dict[TicketStatus, FrozenSet[TicketStatus]] = {
    TicketStatus.PENDING: frozenset({TicketStatus.PREPARING, TicketStatus.CANCELLED}),
    TicketStatus.PREPARING: frozenset({TicketStatus.READY, TicketStatus.CANCELLED}),
    TicketStatus.READY: frozenset(),
    TicketStatus.CANCELLED: frozenset(),
}


class TicketStateMachine:
    """Validates ticket transitions and reports them to the order reconciler.

    Ticket content is never touched here; only status and its timestamps.
    """

    def __init__(self, reconciler: OrderStatusReconciler, outbox: EventOutbox):
        self.reconciler = reconciler
        self.outbox = outbox

    def apply(self, ticket: Ticket, target: TicketStatus, when: Optional[datetime] = None) -> Ticket:
        current = ticket.status
        if target not in TICKET_TRANSITIONS[current]:
            raise ConflictError(
                f"Ticket {ticket.ticket_number} cannot move from {current.value} to {target.value}"
            )

        when = when or utcnow()
        ticket.status = target
        if target == TicketStatus.PREPARING:
            ticket.started_at = when
        elif target == TicketStatus.READY:
            ticket.ready_at = when
        elif target == TicketStatus.CANCELLED:
            ticket.cancelled_at = when

        logger.info("Ticket %s: %s -> %s", ticket.ticket_number, current.value, target.value)
        self.outbox.add(
            StatusEvent(
                order_id=ticket.order_id,
                ticket_id=ticket.id,
                new_status=target.value,
                timestamp=when,
                subject="ticket",
            )
        )

        if target == TicketStatus.PREPARING:
            self.reconciler.on_ticket_started(ticket.order, when)
        elif target == TicketStatus.READY:
            self.reconciler.on_ticket_ready(ticket.order, when)
        return ticket

    def walk_to_ready(self, ticket: Ticket, when: Optional[datetime] = None) -> Ticket:
        """Advance an open ticket through PREPARING to READY."""
        if ticket.status == TicketStatus.PENDING:
            self.apply(ticket, TicketStatus.PREPARING, when)
        if ticket.status == TicketStatus.PREPARING:
            self.apply(ticket, TicketStatus.READY, when)
        return ticket
