"""Marketplace (delivery platform) orders: webhook ingestion and the cashier's
accept / ready / picked-up / cancel overrides.

An ingested order is an ordinary ONLINE Order carrying a MarketplaceOrder
overlay. After ingestion the overlay status only moves through the order
status reconciler.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ConflictError, IntegrityRace, NotFoundError, SignatureError, ValidationError,
)
from app.core.rbac import ActorContext, UserRole
from app.core.security import verify_webhook_signature
from app.db.base import new_id, utcnow
from app.models.delivery import MarketplaceOrder, OverlayStatus
from app.models.order import Order, OrderItem, OrderOrigin, OrderStatus, OPEN_TICKET_STATUSES
from app.repositories import BranchRepo, CatalogRepo, MarketplaceRepo, OrderRepo
from app.services.cart_diff import CartLine, diff
from app.services.notification_service import (
    EventOutbox, NotificationSink, StatusEvent, get_notification_sink,
)
from app.services.marketplace_parsers import (
    IncomingOrder, SIGNATURE_ENCODINGS, branch_id_of, parse_webhook, resolve_platform,
)
from app.services.order_service import OrderService
from app.services.order_totals import money
from app.services.transaction import engine_transaction

logger = logging.getLogger(__name__)


class MarketplaceAction(str, Enum):
    ACCEPT = "accept"
    READY = "ready"
    PICKED_UP = "picked_up"
    CANCEL = "cancel"


@dataclass
class IngestResult:
    order: Order
    created: bool


class MarketplaceService:
    def __init__(self, db: Session, sink: Optional[NotificationSink] = None):
        self.db = db
        self.sink = sink or get_notification_sink()
        self.outbox = EventOutbox()
        self.orders = OrderRepo(db)
        self.branches = BranchRepo(db)
        self.catalog = CatalogRepo(db)
        self.overlays = MarketplaceRepo(db)
        # Shares the outbox so dispatch/cancel events publish with ours
        self.order_service = OrderService(db, sink=self.sink, outbox=self.outbox)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, platform_name: Optional[str], raw_body: bytes, signature: Optional[str]) -> IngestResult:
        """Turn a verified platform webhook into an ONLINE order.

        Replays of an already ingested ``(platform, platform_order_id)`` return
        the existing order with ``created=False``.
        """
        try:
            body = json.loads(raw_body)
        except (TypeError, ValueError):
            raise ValidationError("Webhook body is not valid JSON")
        if not isinstance(body, dict):
            raise ValidationError("Webhook body must be a JSON object")

        platform = resolve_platform(platform_name or body.get("platform"))
        branch = self.branches.get(branch_id_of(platform, body))
        if branch is None:
            raise NotFoundError("Unknown branch in webhook payload")

        secret = branch.webhook_secret(platform.value)
        if secret and not verify_webhook_signature(raw_body, signature, secret, SIGNATURE_ENCODINGS[platform]):
            logger.warning("Rejected %s webhook for branch %s: bad signature", platform.value, branch.id)
            raise SignatureError("Invalid webhook signature")

        incoming = parse_webhook(platform, body)

        existing = self.overlays.find_by_platform_id(platform, incoming.platform_order_id)
        if existing is not None:
            logger.info("Replayed %s order %s ignored", platform.value, incoming.platform_order_id)
            return IngestResult(order=existing.order, created=False)

        try:
            with engine_transaction(self.db, self.outbox, self.sink):
                order = self._create_online_order(branch.id, branch.default_staff_id, incoming)
        except IntegrityRace:
            # A concurrent delivery of the same webhook committed first
            existing = self.overlays.find_by_platform_id(platform, incoming.platform_order_id)
            if existing is None:
                raise
            return IngestResult(order=existing.order, created=False)
        return IngestResult(order=order, created=True)

    def _create_online_order(self, branch_id: str, staff_id: Optional[str], incoming: IncomingOrder) -> Order:
        now = utcnow()
        items = []
        for position, item in enumerate(incoming.items):
            menu_item = self.catalog.get_item(item.item_id)
            unit_price = money(item.price)
            items.append(
                OrderItem(
                    position=position,
                    menu_item_id=item.item_id,
                    name=menu_item.name if menu_item is not None else item.item_id,
                    size=item.size,
                    quantity=item.quantity,
                    unit_price=unit_price,
                    line_total=money(unit_price * item.quantity),
                    dispatched_quantity=0,
                    kot_sent=False,
                )
            )

        subtotal = money(incoming.subtotal)
        tax_primary = money(incoming.tax_primary or subtotal * settings.tax_rate_primary)
        tax_secondary = money(incoming.tax_secondary or subtotal * settings.tax_rate_secondary)
        delivery = money(incoming.delivery_charges)

        order = Order(
            id=new_id(),
            order_number=f"{incoming.platform.value}-{incoming.platform_order_id}",
            origin=OrderOrigin.ONLINE,
            branch_id=branch_id,
            staff_id=staff_id or f"{incoming.platform.value.lower()}-webhook",
            status=OrderStatus.PENDING,
            customer_name=incoming.customer_name,
            customer_phone=incoming.customer_phone,
            subtotal=subtotal,
            tax_primary=tax_primary,
            tax_secondary=tax_secondary,
            delivery_charges=delivery,
            grand_total=subtotal + tax_primary + tax_secondary + delivery,
            created_at=now,
            items=items,
        )
        self.orders.add(order)
        self.overlays.add(
            MarketplaceOrder(
                order_id=order.id,
                order=order,
                platform=incoming.platform,
                platform_order_id=incoming.platform_order_id,
                customer_name=incoming.customer_name,
                customer_phone=incoming.customer_phone,
                delivery_address=json.dumps(incoming.delivery_address),
                status=OverlayStatus.RECEIVED,
            )
        )
        logger.info("Ingested %s as %s (%d lines)", incoming.platform.value, order.order_number, len(items))
        self.outbox.add(StatusEvent(order_id=order.id, new_status=OrderStatus.PENDING.value, timestamp=now))
        self.outbox.add(
            StatusEvent(
                order_id=order.id,
                new_status=OverlayStatus.RECEIVED.value,
                timestamp=now,
                subject="marketplace",
            )
        )
        return order

    # ------------------------------------------------------------------
    # Cashier operations
    # ------------------------------------------------------------------

    def list_orders(
        self, actor: ActorContext, statuses: Optional[Sequence[OrderStatus]] = None, limit: int = 100
    ) -> List[Order]:
        actor.require(UserRole.CASHIER)
        return self.orders.list_for_branch(
            actor.branch_id, origin=OrderOrigin.ONLINE, statuses=statuses, limit=limit
        )

    def advance(self, actor: ActorContext, order_id: str, action: MarketplaceAction) -> Order:
        """Apply a cashier override to an online order."""
        actor.require(UserRole.CASHIER)
        action = MarketplaceAction(action)

        with engine_transaction(self.db, self.outbox, self.sink):
            order = self.orders.get(order_id, for_update=True)
            if order is None or order.marketplace is None:
                raise NotFoundError("Online order not found")
            actor.require_branch(order.branch_id)

            if action == MarketplaceAction.CANCEL:
                self.order_service.cancel_cascade(order)
                return order
            if not order.is_open:
                raise ConflictError(f"Order {order.order_number} is already {order.status.value}")

            if action == MarketplaceAction.ACCEPT:
                self._accept(order)
            elif action == MarketplaceAction.READY:
                self._ready(order)
            elif action == MarketplaceAction.PICKED_UP:
                self._picked_up(order)
        return order

    def _accept(self, order: Order) -> None:
        if order.marketplace.status != OverlayStatus.RECEIVED:
            raise ConflictError(f"Order {order.order_number} was already accepted")
        now = utcnow()
        cart = [CartLine(i.menu_item_id, i.quantity, i.size, i.name) for i in order.items]
        self.order_service.dispatcher.dispatch(order, diff([], cart), now)
        for item in order.items:
            item.dispatched_quantity = item.quantity
            item.kot_sent = True
        self.order_service.reconciler.transition(order, OrderStatus.KOT_SENT, now)

    def _ready(self, order: Order) -> None:
        if order.marketplace.status == OverlayStatus.RECEIVED:
            raise ConflictError(f"Order {order.order_number} has not been accepted")
        now = utcnow()
        for ticket in order.tickets:
            if ticket.status in OPEN_TICKET_STATUSES:
                self.order_service.machine.walk_to_ready(ticket, now)
        # Folding already promoted the order unless every ticket was cancelled
        if order.status in (OrderStatus.KOT_SENT, OrderStatus.PREPARING):
            self.order_service.reconciler.transition(order, OrderStatus.READY, now)

    def _picked_up(self, order: Order) -> None:
        if order.status != OrderStatus.READY:
            raise ConflictError(f"Order {order.order_number} is not ready for pickup")
        self.order_service.reconciler.transition(order, OrderStatus.COMPLETED)
