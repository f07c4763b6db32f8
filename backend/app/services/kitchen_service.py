"""Kitchen-facing operations: the ticket queue and ticket status advances."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, ValidationError
from app.core.rbac import ActorContext, UserRole
from app.models.order import Ticket, TicketStatus
from app.repositories import OrderRepo, TicketRepo
from app.services.notification_service import EventOutbox, NotificationSink, get_notification_sink
from app.services.status_reconciler import OrderStatusReconciler
from app.services.ticket_state import TicketStateMachine
from app.services.transaction import engine_transaction

logger = logging.getLogger(__name__)

# Kitchen staff may only move tickets forward; cancellation comes from the order
KITCHEN_TARGETS = (TicketStatus.PREPARING, TicketStatus.READY)


class KitchenService:
    def __init__(self, db: Session, sink: Optional[NotificationSink] = None):
        self.db = db
        self.sink = sink or get_notification_sink()
        self.outbox = EventOutbox()
        self.tickets = TicketRepo(db)
        self.orders = OrderRepo(db)
        self.machine = TicketStateMachine(OrderStatusReconciler(self.outbox), self.outbox)

    def list_tickets(self, actor: ActorContext, status: TicketStatus = TicketStatus.PENDING) -> List[Ticket]:
        """Tickets of the actor's branch in ``status``, newest first."""
        actor.require(UserRole.KITCHEN)
        return self.tickets.list_for_branch(actor.branch_id, status)

    def advance_ticket(self, actor: ActorContext, ticket_id: str, target: TicketStatus) -> Ticket:
        """Move one ticket to PREPARING or READY, folding the change into its order."""
        actor.require(UserRole.KITCHEN)
        if target not in KITCHEN_TARGETS:
            raise ValidationError(f"Kitchen can only set tickets to PREPARING or READY, not {target.value}")

        with engine_transaction(self.db, self.outbox, self.sink):
            ticket = self.tickets.get(ticket_id)
            if ticket is None:
                raise NotFoundError("Ticket not found")
            actor.require_branch(ticket.order.branch_id)
            # Lock the parent so two tickets finishing together fold in order
            self.orders.get(ticket.order_id, for_update=True)
            self.machine.apply(ticket, target)
        return ticket
