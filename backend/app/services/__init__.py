# Services module

from app.services.cart_diff import CartLine, LineKey, diff
from app.services.order_totals import Totals, recompute
from app.services.notification_service import (
    EventOutbox,
    LoggingNotificationSink,
    NotificationSink,
    StatusEvent,
    WebhookNotificationSink,
    get_notification_sink,
)
from app.services.status_reconciler import OrderStatusReconciler
from app.services.ticket_dispatch import TicketDispatcher
from app.services.ticket_state import TicketStateMachine
from app.services.table_guard import TableOccupancyGuard
from app.services.order_service import CartAction, EditingSession, OrderService, SaveCartResult
from app.services.kitchen_service import KitchenService
from app.services.marketplace_service import IngestResult, MarketplaceAction, MarketplaceService
from app.services.settlement_service import SettlementResult, SettlementService, TipSummary

__all__ = [
    # Cart and totals
    "CartLine",
    "LineKey",
    "diff",
    "Totals",
    "recompute",
    # Notifications
    "EventOutbox",
    "LoggingNotificationSink",
    "NotificationSink",
    "StatusEvent",
    "WebhookNotificationSink",
    "get_notification_sink",
    # Order lifecycle
    "OrderStatusReconciler",
    "TicketDispatcher",
    "TicketStateMachine",
    "TableOccupancyGuard",
    "CartAction",
    "EditingSession",
    "OrderService",
    "SaveCartResult",
    # Kitchen
    "KitchenService",
    # Marketplace
    "IngestResult",
    "MarketplaceAction",
    "MarketplaceService",
    # Settlement
    "SettlementResult",
    "SettlementService",
    "TipSummary",
]
