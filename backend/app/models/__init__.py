"""SQLAlchemy models."""

from app.models.restaurant import Branch, Table, MenuItem
from app.models.order import (
    Order,
    OrderItem,
    Ticket,
    OrderOrigin,
    OrderStatus,
    TicketStatus,
    OPEN_ORDER_STATUSES,
    OPEN_TICKET_STATUSES,
)
from app.models.delivery import MarketplaceOrder, MarketplacePlatform, OverlayStatus
from app.models.payment_ledger import (
    Payment,
    Tip,
    Debt,
    PaymentMode,
    PaymentStatus,
    DebtStatus,
)

__all__ = [
    "Branch",
    "Table",
    "MenuItem",
    "Order",
    "OrderItem",
    "Ticket",
    "OrderOrigin",
    "OrderStatus",
    "TicketStatus",
    "OPEN_ORDER_STATUSES",
    "OPEN_TICKET_STATUSES",
    "MarketplaceOrder",
    "MarketplacePlatform",
    "OverlayStatus",
    "Payment",
    "Tip",
    "Debt",
    "PaymentMode",
    "PaymentStatus",
    "DebtStatus",
]
