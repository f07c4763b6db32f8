"""Marketplace (delivery platform) overlay model."""

import json
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, DateTime, Text, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.db.base import Base, IdMixin, TimestampMixin


class MarketplacePlatform(str, Enum):
    SWIGGY = "SWIGGY"
    ZOMATO = "ZOMATO"
    DUNZO = "DUNZO"


class OverlayStatus(str, Enum):
    RECEIVED = "RECEIVED"
    ACCEPTED = "ACCEPTED"
    PREPARING = "PREPARING"
    READY = "READY"
    PICKED_UP = "PICKED_UP"
    CANCELLED = "CANCELLED"


class MarketplaceOrder(IdMixin, TimestampMixin, Base):
    """Delivery-platform shadow of an ONLINE order.

    Only the status reconciler writes ``status`` after ingestion.
    """
    __tablename__ = "marketplace_orders"
    __table_args__ = (
        UniqueConstraint("platform", "platform_order_id", name="uq_marketplace_platform_order"),
    )

    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, unique=True)
    platform = Column(SQLEnum(MarketplacePlatform, native_enum=False, length=20), nullable=False)
    platform_order_id = Column(String(200), nullable=False)

    customer_name = Column(String(200), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    # Write-once JSON snapshot of the platform's address payload
    delivery_address = Column(Text, nullable=True)

    status = Column(
        SQLEnum(OverlayStatus, native_enum=False, length=20),
        default=OverlayStatus.RECEIVED,
        nullable=False,
    )
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    ready_at = Column(DateTime(timezone=True), nullable=True)
    picked_up_at = Column(DateTime(timezone=True), nullable=True)

    order = relationship("Order", back_populates="marketplace")

    @property
    def address(self):
        return json.loads(self.delivery_address) if self.delivery_address else None

    def stamp(self, status: OverlayStatus, when: datetime) -> None:
        """Set the overlay status and its milestone timestamp, if it has one."""
        self.status = status
        if status == OverlayStatus.ACCEPTED:
            self.accepted_at = when
        elif status == OverlayStatus.READY:
            self.ready_at = when
        elif status == OverlayStatus.PICKED_UP:
            self.picked_up_at = when
