"""Kitchen ticket (KOT) creation from a cart delta."""

import json
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ConflictError
from app.db.base import utcnow
from app.models.order import Order, Ticket, TicketStatus
from app.repositories import TicketRepo
from app.services.cart_diff import CartLine
from app.services.notification_service import EventOutbox, StatusEvent

logger = logging.getLogger(__name__)


def ticket_number(order: Order, sequence: int) -> str:
    """``KOT<last four of order id>-<n>``; unique within an order."""
    return f"{settings.ticket_number_prefix}{order.id[-4:].upper()}-{sequence}"


class TicketDispatcher:
    """Turns a non-empty cart delta into exactly one PENDING ticket."""

    def __init__(self, db: Session, outbox: EventOutbox):
        self.db = db
        self.outbox = outbox
        self.tickets = TicketRepo(db)

    def dispatch(self, order: Order, delta: List[CartLine], when: Optional[datetime] = None) -> Ticket:
        if not delta:
            raise ConflictError("Nothing new to send to the kitchen")

        when = when or utcnow()
        # Counter lives on the order row; the (order_id, sequence) unique
        # constraint rejects a concurrent writer that read the same value.
        order.ticket_seq = (order.ticket_seq or 0) + 1
        sequence = order.ticket_seq

        content = [
            {"name": line.name or line.item_id, "size": line.size, "quantity": line.quantity}
            for line in delta
        ]
        ticket = Ticket(
            sequence=sequence,
            ticket_number=ticket_number(order, sequence),
            content=json.dumps(content),
            status=TicketStatus.PENDING,
            created_at=when,
        )
        order.tickets.append(ticket)
        self.tickets.add(ticket)
        order.kot_sent_at = when

        logger.info(
            "Dispatched ticket %s for order %s (%d lines)",
            ticket.ticket_number,
            order.order_number,
            len(content),
        )
        self.outbox.add(
            StatusEvent(
                order_id=order.id,
                ticket_id=ticket.id,
                new_status=TicketStatus.PENDING.value,
                timestamp=when,
                subject="ticket",
            )
        )
        return ticket
