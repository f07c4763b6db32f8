"""Order settlement, deferred-debt ledger and staff tips."""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.rbac import ActorContext, UserRole
from app.db.base import utcnow
from app.models.order import Order, OrderStatus
from app.models.payment_ledger import (
    Debt, DebtStatus, Payment, PaymentMode, PaymentStatus, Tip,
)
from app.repositories import OrderRepo, PaymentRepo
from app.services.notification_service import EventOutbox, NotificationSink, get_notification_sink
from app.services.order_totals import money
from app.services.status_reconciler import OrderStatusReconciler
from app.services.table_guard import TableOccupancyGuard
from app.services.transaction import engine_transaction

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class SettlementResult:
    order: Order
    payment: Payment
    tip: Optional[Tip] = None
    debt: Optional[Debt] = None


@dataclass
class TipSummary:
    """Tips owed to one staff member."""

    staff_id: str
    total_tips: Decimal = ZERO
    pending_tips: Decimal = ZERO
    settled_tips: Decimal = ZERO
    tips: List[Tip] = field(default_factory=list)


def debt_status(debt: Debt) -> DebtStatus:
    if debt.remaining_amount <= 0:
        return DebtStatus.PAID
    if debt.paid_amount > 0:
        return DebtStatus.PARTIAL
    return DebtStatus.PENDING


class SettlementService:
    def __init__(self, db: Session, sink: Optional[NotificationSink] = None):
        self.db = db
        self.sink = sink or get_notification_sink()
        self.outbox = EventOutbox()
        self.orders = OrderRepo(db)
        self.payments = PaymentRepo(db)
        self.guard = TableOccupancyGuard(db)
        self.reconciler = OrderStatusReconciler(self.outbox)

    def settle(
        self,
        actor: ActorContext,
        order_id: str,
        payment_mode: PaymentMode,
        amount_paid,
        tip_amount=ZERO,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None,
    ) -> SettlementResult:
        """Close an order out with one payment.

        The balance is advisory except for DEBT, where the unpaid part is
        booked on the customer's debt account (found or opened by phone).
        """
        actor.require(UserRole.CASHIER)
        payment_mode = PaymentMode(payment_mode)
        amount_paid = money(amount_paid)
        tip_amount = money(tip_amount or 0)
        if amount_paid < 0 or tip_amount < 0:
            raise ValidationError("Payment and tip amounts cannot be negative")

        with engine_transaction(self.db, self.outbox, self.sink):
            order = self.orders.get(order_id, for_update=True)
            if order is None:
                raise NotFoundError("Order not found")
            actor.require_branch(order.branch_id)
            if not order.is_open or self.payments.find_for_order(order.id) is not None:
                raise ConflictError(f"Order {order.order_number} is already {order.status.value}")
            if not order.items:
                raise ValidationError("Cannot settle an order with no items")

            now = utcnow()
            debt = None
            if payment_mode == PaymentMode.DEBT:
                debt = self._book_debt(
                    order,
                    customer_name or order.customer_name,
                    customer_phone or order.customer_phone,
                    amount_paid,
                )

            payment = Payment(
                order_id=order.id,
                payment_mode=payment_mode,
                amount_paid=amount_paid,
                tip_amount=tip_amount,
                balance_amount=order.grand_total - amount_paid,
                payment_status=PaymentStatus.DEBT if debt is not None else PaymentStatus.COMPLETED,
                debt=debt,
                settled_by=actor.staff_id,
            )
            self.payments.add(payment)

            tip = None
            if tip_amount > 0:
                tip = Tip(
                    order_id=order.id,
                    staff_id=order.staff_id,
                    branch_id=order.branch_id,
                    table_label=order.table.label if order.table is not None else "N/A",
                    amount=tip_amount,
                    payment_mode=payment_mode,
                    is_settled=False,
                )
                self.payments.add(tip)

            order.bill_generated = True
            self.reconciler.transition(order, OrderStatus.COMPLETED, now)
            self.guard.release(order)
            logger.info(
                "Settled order %s: %s %s (tip %s)",
                order.order_number,
                payment_mode.value,
                amount_paid,
                tip_amount,
            )
        return SettlementResult(order=order, payment=payment, tip=tip, debt=debt)

    def _book_debt(self, order: Order, name: Optional[str], phone: Optional[str], amount_paid: Decimal) -> Debt:
        if not name or not phone:
            raise ValidationError("Customer name and phone are required for a debt payment")
        debt = self.payments.find_debt_by_phone(phone)
        if debt is None:
            debt = Debt(customer_name=name, customer_phone=phone, total_debt=ZERO, paid_amount=ZERO)
            self.payments.add(debt)
        debt.total_debt = debt.total_debt + order.grand_total
        debt.paid_amount = debt.paid_amount + amount_paid
        debt.remaining_amount = debt.total_debt - debt.paid_amount
        debt.payment_status = debt_status(debt)
        return debt

    def record_debt_payment(self, actor: ActorContext, debt_id: str, amount) -> Debt:
        """Apply a later payment against a customer's outstanding debt."""
        actor.require(UserRole.CASHIER, UserRole.WAITER, UserRole.CHAIRMAN)
        amount = money(amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than zero")

        with engine_transaction(self.db, self.outbox, self.sink):
            debt = self.payments.get_debt(debt_id)
            if debt is None:
                raise NotFoundError("Debt not found")
            if debt.payment_status == DebtStatus.PAID:
                raise ConflictError("Debt is already fully paid")
            if amount > debt.remaining_amount:
                raise ConflictError(
                    f"Payment {amount} exceeds remaining balance {debt.remaining_amount}"
                )
            debt.paid_amount = debt.paid_amount + amount
            debt.remaining_amount = debt.remaining_amount - amount
            debt.payment_status = DebtStatus.PAID if debt.remaining_amount == 0 else DebtStatus.PARTIAL
            logger.info("Debt %s paid %s, remaining %s", debt.id, amount, debt.remaining_amount)
        return debt

    def list_tips(self, actor: ActorContext, settled: Optional[bool] = None) -> List[TipSummary]:
        actor.require(UserRole.CASHIER)
        grouped: "OrderedDict[str, TipSummary]" = OrderedDict()
        for tip in self.payments.list_tips(actor.branch_id, settled):
            summary = grouped.setdefault(tip.staff_id, TipSummary(staff_id=tip.staff_id))
            summary.tips.append(tip)
            summary.total_tips += tip.amount
            if tip.is_settled:
                summary.settled_tips += tip.amount
            else:
                summary.pending_tips += tip.amount
        return list(grouped.values())

    def settle_tips(self, actor: ActorContext, tip_ids: Sequence[str]) -> int:
        """Mark the given unsettled tips paid out. Returns how many changed."""
        actor.require(UserRole.CASHIER)
        if not tip_ids:
            raise ValidationError("No tips selected")

        with engine_transaction(self.db, self.outbox, self.sink):
            now = utcnow()
            tips = self.payments.unsettled_tips(actor.branch_id, tip_ids)
            for tip in tips:
                tip.is_settled = True
                tip.settled_at = now
                tip.settled_by = actor.staff_id
            logger.info("Settled %d tips", len(tips))
        return len(tips)
