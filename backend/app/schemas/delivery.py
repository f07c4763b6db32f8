"""Marketplace (delivery platform) order schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from app.models.delivery import MarketplacePlatform, OverlayStatus
from app.schemas.order import OrderResponse
from app.services.marketplace_service import MarketplaceAction


class MarketplaceOverlayResponse(BaseModel):
    platform: MarketplacePlatform
    platform_order_id: str
    status: OverlayStatus
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    address: Optional[Any] = None
    accepted_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OnlineOrderResponse(OrderResponse):
    marketplace: Optional[MarketplaceOverlayResponse] = None


class MarketplaceActionRequest(BaseModel):
    action: MarketplaceAction


class WebhookAck(BaseModel):
    """Response returned to the delivery platform."""

    success: bool = True
    order_id: str
    order_number: str
    created: bool
    message: str
