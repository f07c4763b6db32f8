"""Dine-in order service: editing sessions, save-cart and cancellation.

Save-cart is the single entry point waiters and cashiers use for a table.
It resolves the table's open order (or creates one), replaces its lines,
recomputes totals and, depending on the action, sends the not-yet-sent part
of the cart to the kitchen as one new ticket.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, IntegrityRace, NotFoundError, ValidationError
from app.core.rbac import ActorContext, UserRole
from app.db.base import new_id, utcnow
from app.models.order import (
    Order, OrderItem, OrderOrigin, OrderStatus, Ticket, OPEN_TICKET_STATUSES, TicketStatus,
)
from app.models.restaurant import Table
from app.repositories import CatalogRepo, OrderRepo, TableRepo
from app.services.cart_diff import CartLine, diff, merge_lines, quantities
from app.services.notification_service import (
    EventOutbox, NotificationSink, StatusEvent, get_notification_sink,
)
from app.services.order_totals import apply_totals, money, recompute
from app.services.status_reconciler import OrderStatusReconciler
from app.services.table_guard import TableOccupancyGuard, table_lock
from app.services.ticket_dispatch import TicketDispatcher
from app.services.ticket_state import TicketStateMachine
from app.services.transaction import engine_transaction

logger = logging.getLogger(__name__)

# One retry after losing the table-occupancy race; the retry finds the
# winner's order and appends to it.
MAX_SAVE_ATTEMPTS = 2


class CartAction(str, Enum):
    SAVE = "save"
    DISPATCH = "dispatch"
    BILL = "bill"


@dataclass(frozen=True)
class PricedLine:
    line: CartLine
    unit_price: Decimal

    @property
    def quantity(self) -> int:
        return self.line.quantity


@dataclass(frozen=True)
class EditingSession:
    order: Optional[Order]
    snapshot: List[CartLine] = field(default_factory=list)


@dataclass
class SaveCartResult:
    order: Order
    created: bool
    ticket: Optional[Ticket] = None
    delta: List[CartLine] = field(default_factory=list)


def dispatch_ledger(order: Order) -> List[CartLine]:
    """What each line of ``order`` has already sent to the kitchen."""
    return [
        CartLine(item.menu_item_id, item.dispatched_quantity, item.size, item.name)
        for item in order.items
        if item.dispatched_quantity > 0
    ]


def dine_in_order_number(order_id: str, when: datetime) -> str:
    return f"ORD{when:%Y%m%d%H%M%S}-{order_id[:6].upper()}"


class OrderService:
    """Order aggregate operations for dine-in tables."""

    def __init__(
        self,
        db: Session,
        sink: Optional[NotificationSink] = None,
        outbox: Optional[EventOutbox] = None,
    ):
        self.db = db
        self.sink = sink or get_notification_sink()
        self.outbox = outbox if outbox is not None else EventOutbox()
        self.orders = OrderRepo(db)
        self.tables = TableRepo(db)
        self.catalog = CatalogRepo(db)
        self.guard = TableOccupancyGuard(db)
        self.reconciler = OrderStatusReconciler(self.outbox)
        self.dispatcher = TicketDispatcher(db, self.outbox)
        self.machine = TicketStateMachine(self.reconciler, self.outbox)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_order(self, actor: ActorContext, order_id: str) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        actor.require_branch(order.branch_id)
        return order

    def open_editing_session(self, actor: ActorContext, table_id: str) -> EditingSession:
        """The table's open order plus the dispatch snapshot to send back on save."""
        actor.require(UserRole.CASHIER, UserRole.WAITER)
        table = self._get_table(actor, table_id)
        order = self.orders.find_open_for_table(table.id)
        if order is None:
            return EditingSession(order=None)
        return EditingSession(order=order, snapshot=dispatch_ledger(order))

    # ------------------------------------------------------------------
    # Save cart
    # ------------------------------------------------------------------

    def save_cart(
        self,
        actor: ActorContext,
        table_id: str,
        lines: Iterable[CartLine],
        action: CartAction = CartAction.SAVE,
        discount: Optional[Decimal] = None,
        discount_coupon: Optional[str] = None,
        prior_snapshot: Optional[Iterable[CartLine]] = None,
    ) -> SaveCartResult:
        """Create or update the table's open order from the full cart.

        ``prior_snapshot`` is the dispatch snapshot returned by
        :meth:`open_editing_session`; without it the order's persisted
        dispatch ledger is used.
        """
        actor.require(UserRole.CASHIER, UserRole.WAITER)
        if not table_id:
            raise ValidationError("Table is required")
        lines = list(lines or [])
        if not lines:
            raise ValidationError("Cart has no items")
        action = CartAction(action)
        if prior_snapshot is not None:
            prior_snapshot = list(prior_snapshot)

        table = self._get_table(actor, table_id)
        priced = self._price_lines(actor, lines)

        with table_lock(table.id):
            for attempt in range(1, MAX_SAVE_ATTEMPTS + 1):
                try:
                    with engine_transaction(self.db, self.outbox, self.sink):
                        return self._save(actor, table, priced, action, discount, discount_coupon, prior_snapshot)
                except IntegrityRace:
                    if attempt == MAX_SAVE_ATTEMPTS:
                        logger.warning("Save for table %s lost the occupancy race twice", table.id)
                        raise
                    logger.info("Save for table %s raced another writer, retrying", table.id)

    def _save(
        self,
        actor: ActorContext,
        table: Table,
        priced: List[PricedLine],
        action: CartAction,
        discount: Optional[Decimal],
        discount_coupon: Optional[str],
        prior_snapshot: Optional[List[CartLine]],
    ) -> SaveCartResult:
        now = utcnow()
        order = self.guard.resolve_target(table)
        created = order is None

        if created:
            prior: List[CartLine] = []
        elif prior_snapshot is not None:
            prior = prior_snapshot
        else:
            prior = dispatch_ledger(order)

        current = [p.line for p in priced]
        delta = diff(prior, current)
        if action == CartAction.DISPATCH and not delta:
            raise ConflictError("No new items to send to the kitchen")

        if discount is None:
            discount = Decimal("0") if created else order.discount
        totals = recompute(priced, discount)

        if created:
            order_id = new_id()
            order = Order(
                id=order_id,
                order_number=dine_in_order_number(order_id, now),
                origin=OrderOrigin.DINE_IN,
                branch_id=table.branch_id,
                table_id=table.id,
                staff_id=actor.staff_id,
                status=OrderStatus.PENDING,
                created_at=now,
            )
            apply_totals(order, totals)
            self.guard.occupy(table, order)
            self.orders.add(order)
            logger.info("Opened order %s on table %s", order.order_number, table.label)
            self.outbox.add(StatusEvent(order_id=order.id, new_status=OrderStatus.PENDING.value, timestamp=now))
        else:
            apply_totals(order, totals)
            self.guard.occupy(table, order)

        if discount_coupon is not None:
            order.discount_coupon = discount_coupon

        dispatching = action in (CartAction.DISPATCH, CartAction.BILL) and bool(delta)
        self.orders.replace_items(order, self._build_items(priced, prior, dispatching))

        ticket = None
        if dispatching:
            ticket = self.dispatcher.dispatch(order, delta, now)
            self.reconciler.transition(order, OrderStatus.KOT_SENT, now)
        if action == CartAction.BILL:
            order.bill_generated = True
            self.reconciler.transition(order, OrderStatus.BILL_REQUESTED, now)

        return SaveCartResult(order=order, created=created, ticket=ticket, delta=delta)

    def _build_items(self, priced: List[PricedLine], prior: List[CartLine], dispatching: bool) -> List[OrderItem]:
        sent = quantities(prior)
        items = []
        for p in priced:
            line = p.line
            dispatched = line.quantity if dispatching else min(sent.get(line.key, 0), line.quantity)
            items.append(
                OrderItem(
                    menu_item_id=line.item_id,
                    name=line.name,
                    size=line.size,
                    quantity=line.quantity,
                    unit_price=p.unit_price,
                    line_total=money(p.unit_price * line.quantity),
                    dispatched_quantity=dispatched,
                    kot_sent=dispatched >= line.quantity,
                )
            )
        return items

    def _price_lines(self, actor: ActorContext, lines: List[CartLine]) -> List[PricedLine]:
        """Validate cart lines and price them from the catalog."""
        priced = []
        for line in merge_lines(lines):
            if not line.item_id:
                raise ValidationError("Every cart line needs an item id")
            if line.quantity < 1:
                raise ValidationError(f"Quantity for item {line.item_id} must be at least 1")

            item = self.catalog.get_item(line.item_id)
            if item is None or (item.branch_id and item.branch_id != actor.branch_id):
                raise ValidationError(f"Unknown menu item {line.item_id}")
            if not item.available:
                raise ValidationError(f"{item.name} is not available")

            if line.size:
                sizes = item.size_prices or {}
                if line.size not in sizes:
                    raise ValidationError(f"{item.name} has no size {line.size}")
                unit_price = money(sizes[line.size])
            else:
                unit_price = money(item.price)

            priced.append(
                PricedLine(
                    line=CartLine(line.item_id, line.quantity, line.size or None, item.name),
                    unit_price=unit_price,
                )
            )
        return priced

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel_order(self, actor: ActorContext, order_id: str) -> Order:
        actor.require(UserRole.CASHIER, UserRole.CHAIRMAN)
        with engine_transaction(self.db, self.outbox, self.sink):
            order = self.orders.get(order_id, for_update=True)
            if order is None:
                raise NotFoundError("Order not found")
            actor.require_branch(order.branch_id)
            self.cancel_cascade(order)
        return order

    def cancel_cascade(self, order: Order, when: Optional[datetime] = None) -> None:
        """Cancel open tickets, cancel the order and free its table. No commit."""
        if not order.is_open:
            raise ConflictError(f"Order {order.order_number} is already {order.status.value}")
        when = when or utcnow()
        for ticket in order.tickets:
            if ticket.status in OPEN_TICKET_STATUSES:
                self.machine.apply(ticket, TicketStatus.CANCELLED, when)
        self.reconciler.transition(order, OrderStatus.CANCELLED, when)
        self.guard.release(order)

    def _get_table(self, actor: ActorContext, table_id: str) -> Table:
        table = self.tables.get(table_id)
        if table is None:
            raise NotFoundError("Table not found")
        actor.require_branch(table.branch_id)
        return table
