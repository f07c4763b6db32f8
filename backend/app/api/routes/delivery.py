"""Delivery platform routes: inbound webhooks and the cashier's online-order board."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Header, Query, Request
from fastapi.responses import JSONResponse

from app.core.rate_limit import limiter
from app.core.rbac import RequireCashier
from app.db.session import DbSession
from app.models.order import OrderStatus
from app.schemas.delivery import MarketplaceActionRequest, OnlineOrderResponse, WebhookAck
from app.services.marketplace_service import MarketplaceService
from app.services.notification_service import Sink

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/online-orders", response_model=WebhookAck, status_code=201)
@limiter.limit("120/minute")
async def receive_online_order(
    request: Request,
    db: DbSession,
    sink: Sink,
    x_webhook_signature: Optional[str] = Header(None, alias="x-webhook-signature"),
    x_platform: Optional[str] = Header(None, alias="x-platform"),
):
    """Ingest an order pushed by Swiggy, Zomato or Dunzo.

    The signature is computed over the raw body, so the body is read before
    any JSON parsing. Replays answer 200 with the existing order.
    """
    body = await request.body()
    result = MarketplaceService(db, sink).ingest(x_platform, body, x_webhook_signature)
    ack = WebhookAck(
        order_id=result.order.id,
        order_number=result.order.order_number,
        created=result.created,
        message="Order received successfully" if result.created else "Order already received",
    )
    if not result.created:
        return JSONResponse(status_code=200, content=ack.model_dump())
    return ack


@router.get("/online-orders", response_model=List[OnlineOrderResponse])
@limiter.limit("60/minute")
def list_online_orders(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: RequireCashier,
    status: Optional[List[OrderStatus]] = Query(None),
    limit: int = Query(100, ge=1, le=500),
):
    return MarketplaceService(db, sink).list_orders(actor, status, limit=limit)


@router.post("/online-orders/{order_id}/actions", response_model=OnlineOrderResponse)
@limiter.limit("30/minute")
def advance_online_order(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: RequireCashier,
    order_id: str,
    body: MarketplaceActionRequest,
):
    """Accept, mark ready, mark picked up, or cancel an online order."""
    return MarketplaceService(db, sink).advance(actor, order_id, body.action)
