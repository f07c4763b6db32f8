"""Kitchen ticket schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.models.order import OrderOrigin, Ticket, TicketStatus


class TicketEntry(BaseModel):
    name: str
    size: Optional[str] = None
    quantity: int


class TicketResponse(BaseModel):
    id: str
    order_id: str
    order_number: str
    origin: OrderOrigin
    table_label: Optional[str] = None
    ticket_number: str
    sequence: int
    status: TicketStatus
    entries: List[TicketEntry]
    created_at: datetime
    started_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> "TicketResponse":
        order = ticket.order
        return cls(
            id=ticket.id,
            order_id=ticket.order_id,
            order_number=order.order_number,
            origin=order.origin,
            table_label=order.table.label if order.table is not None else None,
            ticket_number=ticket.ticket_number,
            sequence=ticket.sequence,
            status=ticket.status,
            entries=ticket.entries,
            created_at=ticket.created_at,
            started_at=ticket.started_at,
            ready_at=ticket.ready_at,
            cancelled_at=ticket.cancelled_at,
        )


class TicketAdvanceRequest(BaseModel):
    status: TicketStatus
