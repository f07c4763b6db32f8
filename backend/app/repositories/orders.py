"""Order and order-line persistence."""

from typing import List, Optional, Sequence

from sqlalchemy.orm import Session, selectinload

from app.models.order import Order, OrderItem, OrderOrigin, OrderStatus, OPEN_ORDER_STATUSES


class OrderRepo:
    """Reads and writes for the Order aggregate (order + its lines)."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: str, *, for_update: bool = False) -> Optional[Order]:
        query = self.db.query(Order).filter(Order.id == order_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def find_open_for_table(self, table_id: str, *, for_update: bool = False) -> Optional[Order]:
        """Most recent order on the table whose status is still open."""
        query = (
            self.db.query(Order)
            .filter(Order.table_id == table_id, Order.status.in_(OPEN_ORDER_STATUSES))
            .order_by(Order.created_at.desc())
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def list_for_branch(
        self,
        branch_id: str,
        *,
        origin: Optional[OrderOrigin] = None,
        statuses: Optional[Sequence[OrderStatus]] = None,
        limit: int = 100,
    ) -> List[Order]:
        query = self.db.query(Order).options(selectinload(Order.items)).filter(Order.branch_id == branch_id)
        if origin is not None:
            query = query.filter(Order.origin == origin)
        if statuses:
            query = query.filter(Order.status.in_(list(statuses)))
        return query.order_by(Order.created_at.desc()).limit(limit).all()

    def add(self, order: Order) -> Order:
        self.db.add(order)
        self.db.flush()
        return order

    def replace_items(self, order: Order, items: List[OrderItem]) -> None:
        """Swap the full line set; old rows are deleted as orphans."""
        for position, item in enumerate(items):
            item.position = position
        order.items = items
        self.db.flush()
