"""Dine-in order schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.order import OrderOrigin, OrderStatus, TicketStatus
from app.services.order_service import CartAction


class CartLineIn(BaseModel):
    """One cart line as sent by the floor app. Prices come from the menu."""

    item_id: str
    quantity: int
    size: Optional[str] = None


class SnapshotLine(BaseModel):
    """Quantity of an item/size already sent to the kitchen."""

    item_id: str
    quantity: int
    size: Optional[str] = None

    model_config = {"from_attributes": True}


class SaveCartRequest(BaseModel):
    table_id: str
    items: List[CartLineIn] = Field(default_factory=list)
    action: CartAction = CartAction.SAVE
    discount: Optional[Decimal] = None
    discount_coupon: Optional[str] = None
    prior_snapshot: Optional[List[SnapshotLine]] = None


class OrderItemResponse(BaseModel):
    id: str
    menu_item_id: str
    name: str
    size: Optional[str] = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    dispatched_quantity: int
    kot_sent: bool

    model_config = {"from_attributes": True}


class OrderTicketResponse(BaseModel):
    id: str
    ticket_number: str
    sequence: int
    status: TicketStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: str
    order_number: str
    origin: OrderOrigin
    branch_id: str
    table_id: Optional[str] = None
    staff_id: str
    status: OrderStatus
    subtotal: Decimal
    discount: Decimal
    discount_coupon: Optional[str] = None
    tax_primary: Decimal
    tax_secondary: Decimal
    delivery_charges: Decimal
    grand_total: Decimal
    bill_generated: bool
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    kot_sent_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    items: List[OrderItemResponse] = []
    tickets: List[OrderTicketResponse] = []

    model_config = {"from_attributes": True}


class SaveCartResponse(BaseModel):
    order: OrderResponse
    created: bool
    ticket: Optional[OrderTicketResponse] = None
    delta: List[SnapshotLine] = []

    model_config = {"from_attributes": True}


class EditingSessionResponse(BaseModel):
    """Open order for a table plus the snapshot to echo back on save."""

    order: Optional[OrderResponse] = None
    snapshot: List[SnapshotLine] = []

    model_config = {"from_attributes": True}
