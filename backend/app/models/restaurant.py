"""Restaurant floor models - branches, tables, catalog."""

from decimal import Decimal

from sqlalchemy import Column, String, Numeric, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship, validates

from app.db.base import Base, IdMixin, TimestampMixin
from app.models.validators import non_negative, validate_marketplace_config, validate_size_prices


class Branch(IdMixin, TimestampMixin, Base):
    """Restaurant branch.

    ``marketplace_config`` maps a platform name to its settings, e.g.
    ``{"SWIGGY": {"webhook_secret": "..."}}``.
    """
    __tablename__ = "branches"

    name = Column(String(200), nullable=False)
    marketplace_config = Column(JSON, nullable=True)
    # Staff identity recorded as creator of ingested marketplace orders
    default_staff_id = Column(String(64), nullable=True)

    tables = relationship("Table", back_populates="branch")

    @validates("marketplace_config")
    def _validate_config(self, key, value):
        return validate_marketplace_config(key, value)

    def webhook_secret(self, platform: str):
        config = (self.marketplace_config or {}).get(platform) or {}
        return config.get("webhook_secret")


class Table(IdMixin, TimestampMixin, Base):
    """Restaurant table for seating."""
    __tablename__ = "tables"

    branch_id = Column(String(32), ForeignKey("branches.id"), nullable=False, index=True)
    number = Column(String(50), nullable=False)
    name = Column(String(100), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)

    branch = relationship("Branch", back_populates="tables")

    @property
    def label(self) -> str:
        return self.name or self.number


class MenuItem(IdMixin, TimestampMixin, Base):
    """Catalog entry used to price cart lines.

    ``size_prices`` holds per-variant prices (``{"HALF": 120, "FULL": 200}``);
    ``price`` applies when no size is requested.
    """
    __tablename__ = "menu_items"

    branch_id = Column(String(32), ForeignKey("branches.id"), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    size_prices = Column(JSON, nullable=True)
    available = Column(Boolean, default=True, nullable=False)

    @validates("price")
    def _validate_price(self, key, value):
        return non_negative(key, value)

    @validates("size_prices")
    def _validate_sizes(self, key, value):
        return validate_size_prices(key, value)
