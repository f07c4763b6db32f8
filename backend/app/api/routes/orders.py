"""Dine-in order routes: editing session, save cart, cancel."""

import logging

from fastapi import APIRouter, Request

from app.core.rate_limit import limiter
from app.core.rbac import CurrentActor, RequireFloorStaff
from app.db.session import DbSession
from app.schemas.order import (
    EditingSessionResponse, OrderResponse, SaveCartRequest, SaveCartResponse,
)
from app.services.cart_diff import CartLine
from app.services.notification_service import Sink
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/tables/{table_id}/session", response_model=EditingSessionResponse)
@limiter.limit("60/minute")
def get_editing_session(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: RequireFloorStaff,
    table_id: str,
):
    """Open order for a table (if any) with its dispatch snapshot."""
    session = OrderService(db, sink).open_editing_session(actor, table_id)
    return EditingSessionResponse.model_validate(session)


@router.post("/orders/cart", response_model=SaveCartResponse)
@limiter.limit("30/minute")
def save_cart(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: RequireFloorStaff,
    body: SaveCartRequest,
):
    """Save the full cart for a table; optionally send new lines to the kitchen or request the bill."""
    lines = [CartLine(line.item_id, line.quantity, line.size) for line in body.items]
    prior = None
    if body.prior_snapshot is not None:
        prior = [CartLine(line.item_id, line.quantity, line.size) for line in body.prior_snapshot]

    result = OrderService(db, sink).save_cart(
        actor,
        body.table_id,
        lines,
        action=body.action,
        discount=body.discount,
        discount_coupon=body.discount_coupon,
        prior_snapshot=prior,
    )
    return SaveCartResponse.model_validate(result)


@router.get("/orders/{order_id}", response_model=OrderResponse)
@limiter.limit("60/minute")
def get_order(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: CurrentActor,
    order_id: str,
):
    return OrderService(db, sink).get_order(actor, order_id)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
@limiter.limit("30/minute")
def cancel_order(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: CurrentActor,
    order_id: str,
):
    """Cancel an open order and all of its unfinished tickets."""
    return OrderService(db, sink).cancel_order(actor, order_id)
