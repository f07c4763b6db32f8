"""Order, order line and kitchen ticket (KOT) models."""

import enum
import json
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, Boolean, ForeignKey, Text,
    UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, validates

from app.db.base import Base, IdMixin, TimestampMixin
from app.models.validators import non_negative, positive


class OrderOrigin(str, enum.Enum):
    DINE_IN = "DINE_IN"
    ONLINE = "ONLINE"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    KOT_SENT = "KOT_SENT"
    PREPARING = "PREPARING"
    READY = "READY"
    BILL_REQUESTED = "BILL_REQUESTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


OPEN_ORDER_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.KOT_SENT,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.BILL_REQUESTED,
)


class TicketStatus(str, enum.Enum):
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"
    CANCELLED = "CANCELLED"


OPEN_TICKET_STATUSES = (TicketStatus.PENDING, TicketStatus.PREPARING)


class Order(IdMixin, TimestampMixin, Base):
    """One active tab: a dine-in table order or an ingested marketplace order.

    ``occupied_table_id`` mirrors ``table_id`` while the order is open and is
    cleared on the terminal transition. Its unique constraint is what keeps a
    table to a single open order.
    """
    __tablename__ = "orders"

    order_number = Column(String(100), nullable=False, unique=True)
    origin = Column(SQLEnum(OrderOrigin, native_enum=False, length=20), nullable=False)
    branch_id = Column(String(32), ForeignKey("branches.id"), nullable=False, index=True)
    table_id = Column(String(32), ForeignKey("tables.id"), nullable=True, index=True)
    occupied_table_id = Column(String(32), nullable=True, unique=True)
    staff_id = Column(String(64), nullable=False)

    status = Column(
        SQLEnum(OrderStatus, native_enum=False, length=20),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )

    subtotal = Column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    discount = Column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    discount_coupon = Column(String(50), nullable=True)
    tax_primary = Column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    tax_secondary = Column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    delivery_charges = Column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    grand_total = Column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    bill_generated = Column(Boolean, default=False, nullable=False)

    # Server-assigned ticket counter; only ever incremented
    ticket_seq = Column(Integer, default=0, nullable=False)

    customer_name = Column(String(200), nullable=True)
    customer_phone = Column(String(50), nullable=True)

    kot_sent_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )
    tickets = relationship(
        "Ticket",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Ticket.sequence",
    )
    marketplace = relationship("MarketplaceOrder", back_populates="order", uselist=False)
    payment = relationship("Payment", back_populates="order", uselist=False)
    table = relationship("Table")

    # Optimistic locking: flushing against a stale row raises StaleDataError
    version = Column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}

    @validates("subtotal", "discount", "tax_primary", "tax_secondary", "delivery_charges", "grand_total")
    def _validate_amounts(self, key, value):
        return non_negative(key, value)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_ORDER_STATUSES


class OrderItem(IdMixin, Base):
    """A line of an order.

    Rows are replaced wholesale on every save. ``dispatched_quantity`` carries
    how much of the line has already gone to the kitchen across saves.
    """
    __tablename__ = "order_items"

    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    menu_item_id = Column(String(64), nullable=False)
    name = Column(String(200), nullable=False)
    size = Column(String(50), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)
    dispatched_quantity = Column(Integer, default=0, nullable=False)
    kot_sent = Column(Boolean, default=False, nullable=False)

    order = relationship("Order", back_populates="items")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(key, value)

    @validates("unit_price", "line_total", "dispatched_quantity")
    def _validate_amounts(self, key, value):
        return non_negative(key, value)


class Ticket(IdMixin, TimestampMixin, Base):
    """Kitchen order ticket (KOT).

    ``content`` is a write-once JSON blob of ``{name, size, quantity}``
    entries; it is never rewritten after insert.
    """
    __tablename__ = "tickets"
    __table_args__ = (
        UniqueConstraint("order_id", "sequence", name="uq_tickets_order_sequence"),
    )

    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    ticket_number = Column(String(100), nullable=False, index=True)
    content = Column(Text, nullable=False)
    status = Column(
        SQLEnum(TicketStatus, native_enum=False, length=20),
        default=TicketStatus.PENDING,
        nullable=False,
        index=True,
    )

    started_at = Column(DateTime(timezone=True), nullable=True)
    ready_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    order = relationship("Order", back_populates="tickets")

    @property
    def entries(self) -> list:
        return json.loads(self.content)
