"""Kitchen ticket persistence."""

from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from app.models.order import Order, Ticket, TicketStatus


class TicketRepo:
    """Reads and writes for kitchen tickets."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, ticket_id: str) -> Optional[Ticket]:
        return self.db.query(Ticket).filter(Ticket.id == ticket_id).first()

    def list_for_branch(self, branch_id: str, status: TicketStatus, limit: int = 200) -> List[Ticket]:
        return (
            self.db.query(Ticket)
            .join(Order, Order.id == Ticket.order_id)
            .options(joinedload(Ticket.order))
            .filter(Order.branch_id == branch_id, Ticket.status == status)
            .order_by(Ticket.created_at.desc(), Ticket.sequence.desc())
            .limit(limit)
            .all()
        )

    def add(self, ticket: Ticket) -> Ticket:
        self.db.add(ticket)
        self.db.flush()
        return ticket
