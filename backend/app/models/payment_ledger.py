"""Settlement artifacts: payment, tip and deferred-debt ledger."""

import enum
from decimal import Decimal

from sqlalchemy import Column, String, DateTime, Numeric, Boolean, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship, validates

from app.db.base import Base, IdMixin, TimestampMixin
from app.models.validators import non_negative


class PaymentMode(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    UPI = "UPI"
    DEBT = "DEBT"


class PaymentStatus(str, enum.Enum):
    COMPLETED = "COMPLETED"
    DEBT = "DEBT"


class DebtStatus(str, enum.Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class Payment(IdMixin, TimestampMixin, Base):
    """Close-out payment. At most one per order."""
    __tablename__ = "payments"

    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, unique=True)
    payment_mode = Column(SQLEnum(PaymentMode, native_enum=False, length=20), nullable=False)
    amount_paid = Column(Numeric(10, 2), nullable=False)
    tip_amount = Column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    # grand_total - amount_paid; advisory only
    balance_amount = Column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    payment_status = Column(SQLEnum(PaymentStatus, native_enum=False, length=20), nullable=False)
    debt_id = Column(String(32), ForeignKey("debts.id"), nullable=True)
    settled_by = Column(String(64), nullable=False)

    order = relationship("Order", back_populates="payment")
    debt = relationship("Debt")

    @validates("amount_paid", "tip_amount")
    def _validate_amounts(self, key, value):
        return non_negative(key, value)


class Tip(IdMixin, TimestampMixin, Base):
    """Tip owed to the staff member who opened the order."""
    __tablename__ = "tips"

    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, unique=True)
    staff_id = Column(String(64), nullable=False, index=True)
    branch_id = Column(String(32), ForeignKey("branches.id"), nullable=False, index=True)
    table_label = Column(String(100), nullable=False, default="N/A")
    amount = Column(Numeric(10, 2), nullable=False)
    payment_mode = Column(SQLEnum(PaymentMode, native_enum=False, length=20), nullable=False)

    is_settled = Column(Boolean, default=False, nullable=False)
    settled_at = Column(DateTime(timezone=True), nullable=True)
    settled_by = Column(String(64), nullable=True)

    @validates("amount")
    def _validate_amount(self, key, value):
        return non_negative(key, value)


class Debt(IdMixin, TimestampMixin, Base):
    """Deferred-debt account for one customer, keyed by phone."""
    __tablename__ = "debts"

    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(50), nullable=False, unique=True)
    total_debt = Column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    paid_amount = Column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    remaining_amount = Column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    payment_status = Column(
        SQLEnum(DebtStatus, native_enum=False, length=20),
        default=DebtStatus.PENDING,
        nullable=False,
    )

    @validates("total_debt", "paid_amount")
    def _validate_amounts(self, key, value):
        return non_negative(key, value)
