"""Payment, tip and debt persistence."""

from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.models.payment_ledger import Debt, Payment, Tip


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def find_for_order(self, order_id: str) -> Optional[Payment]:
        return self.db.query(Payment).filter(Payment.order_id == order_id).first()

    def get_debt(self, debt_id: str) -> Optional[Debt]:
        return self.db.query(Debt).filter(Debt.id == debt_id).first()

    def find_debt_by_phone(self, phone: str) -> Optional[Debt]:
        return self.db.query(Debt).filter(Debt.customer_phone == phone).first()

    def list_tips(self, branch_id: str, settled: Optional[bool] = None) -> List[Tip]:
        query = self.db.query(Tip).filter(Tip.branch_id == branch_id)
        if settled is not None:
            query = query.filter(Tip.is_settled == settled)
        return query.order_by(Tip.created_at.desc()).all()

    def unsettled_tips(self, branch_id: str, tip_ids: Sequence[str]) -> List[Tip]:
        return (
            self.db.query(Tip)
            .filter(Tip.branch_id == branch_id, Tip.id.in_(list(tip_ids)), Tip.is_settled == False)  # noqa: E712
            .all()
        )

    def add(self, record) -> None:
        self.db.add(record)
        self.db.flush()
