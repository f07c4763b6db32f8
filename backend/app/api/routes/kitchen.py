"""Kitchen display routes."""

import logging
from typing import List

from fastapi import APIRouter, Request

from app.core.rate_limit import limiter
from app.core.rbac import RequireKitchen
from app.db.session import DbSession
from app.models.order import TicketStatus
from app.schemas.kitchen import TicketAdvanceRequest, TicketResponse
from app.services.kitchen_service import KitchenService
from app.services.notification_service import Sink

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/tickets", response_model=List[TicketResponse])
@limiter.limit("60/minute")
def get_kitchen_tickets(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: RequireKitchen,
    status: TicketStatus = TicketStatus.PENDING,
):
    """Tickets for the kitchen's branch in one state, newest first."""
    tickets = KitchenService(db, sink).list_tickets(actor, status)
    return [TicketResponse.from_ticket(t) for t in tickets]


@router.patch("/tickets/{ticket_id}", response_model=TicketResponse)
@limiter.limit("30/minute")
def advance_ticket(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: RequireKitchen,
    ticket_id: str,
    body: TicketAdvanceRequest,
):
    """Mark a ticket PREPARING or READY."""
    ticket = KitchenService(db, sink).advance_ticket(actor, ticket_id, body.status)
    return TicketResponse.from_ticket(ticket)
