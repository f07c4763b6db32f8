"""Order status reconciler.

The only writer of ``Order.status`` and, after ingestion, of the
marketplace overlay status. Dispatch, ticket advances, settlement and
cancellation all route their order-level effects through here so the
overlay moves in the same transaction as the order.
"""

import logging
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from app.core.exceptions import ConflictError
from app.db.base import utcnow
from app.models.delivery import OverlayStatus
from app.models.order import Order, OrderStatus, TicketStatus
from app.services.notification_service import EventOutbox, StatusEvent

logger = logging.getLogger(__name__)

_OPEN_TARGETS = frozenset({
    OrderStatus.KOT_SENT,
    OrderStatus.BILL_REQUESTED,
    OrderStatus.COMPLETED,
    OrderStatus.CANCELLED,
})

ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: _OPEN_TARGETS,
    OrderStatus.KOT_SENT: _OPEN_TARGETS | {OrderStatus.PREPARING, OrderStatus.READY},
    OrderStatus.PREPARING: _OPEN_TARGETS | {OrderStatus.READY},
    OrderStatus.READY: _OPEN_TARGETS,
    OrderStatus.BILL_REQUESTED: _OPEN_TARGETS,
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

OVERLAY_MIRROR: Dict[OrderStatus, OverlayStatus] = {
    OrderStatus.KOT_SENT: OverlayStatus.ACCEPTED,
    OrderStatus.PREPARING: OverlayStatus.PREPARING,
    OrderStatus.READY: OverlayStatus.READY,
    OrderStatus.COMPLETED: OverlayStatus.PICKED_UP,
    OrderStatus.CANCELLED: OverlayStatus.CANCELLED,
}

# Ticket states that count as "done" when folding tickets into the order
_SETTLED_TICKET_STATUSES = (TicketStatus.READY, TicketStatus.CANCELLED)


class OrderStatusReconciler:
    """Applies order transitions and folds ticket progress into order status."""

    def __init__(self, outbox: EventOutbox):
        self.outbox = outbox

    def transition(self, order: Order, target: OrderStatus, when: Optional[datetime] = None) -> None:
        """Move ``order`` to ``target`` and mirror the marketplace overlay.

        KOT_SENT may be re-entered, once per dispatch. Any other transition
        into the current status is a no-op.
        """
        current = order.status
        if current == target and target != OrderStatus.KOT_SENT:
            return
        if target not in ORDER_TRANSITIONS[current]:
            raise ConflictError(f"Order {order.order_number} cannot move from {current.value} to {target.value}")

        when = when or utcnow()
        order.status = target
        if target == OrderStatus.COMPLETED:
            order.completed_at = when
        logger.info("Order %s: %s -> %s", order.order_number, current.value, target.value)
        self.outbox.add(StatusEvent(order_id=order.id, new_status=target.value, timestamp=when))

        overlay = order.marketplace
        mirrored = OVERLAY_MIRROR.get(target)
        if overlay is not None and mirrored is not None and overlay.status != mirrored:
            overlay.stamp(mirrored, when)
            self.outbox.add(
                StatusEvent(
                    order_id=order.id,
                    new_status=mirrored.value,
                    timestamp=when,
                    subject="marketplace",
                )
            )

    def on_ticket_started(self, order: Order, when: Optional[datetime] = None) -> None:
        """First ticket picked up by the kitchen: KOT_SENT becomes PREPARING."""
        if order.status == OrderStatus.KOT_SENT:
            self.transition(order, OrderStatus.PREPARING, when)

    def on_ticket_ready(self, order: Order, when: Optional[datetime] = None) -> None:
        """Promote the order to READY once every ticket is READY or CANCELLED.

        Fires only from KOT_SENT or PREPARING, so it happens once per round
        of tickets and never overrides a bill request.
        """
        if order.status not in (OrderStatus.KOT_SENT, OrderStatus.PREPARING):
            return
        tickets = order.tickets
        if not tickets or any(t.status not in _SETTLED_TICKET_STATUSES for t in tickets):
            return
        if not any(t.status == TicketStatus.READY for t in tickets):
            return
        self.transition(order, OrderStatus.READY, when)
