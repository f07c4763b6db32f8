"""Table occupancy: at most one open order per dine-in table."""

import threading
import weakref
from contextlib import contextmanager
from typing import Optional

from sqlalchemy.orm import Session

from app.models.order import Order
from app.models.restaurant import Table
from app.repositories import OrderRepo, TableRepo

_registry_lock = threading.Lock()
# Entries live only while a save for that table holds or waits on the lock
_table_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()


@contextmanager
def table_lock(table_id: str):
    """Serialize saves for one table within this process.

    Across processes the unique ``orders.occupied_table_id`` column is what
    rejects the second of two concurrent new orders.
    """
    with _registry_lock:
        lock = _table_locks.get(table_id)
        if lock is None:
            lock = _table_locks[table_id] = threading.Lock()
    with lock:
        yield


class TableOccupancyGuard:
    def __init__(self, db: Session):
        self.db = db
        self.orders = OrderRepo(db)
        self.tables = TableRepo(db)

    def resolve_target(self, table: Table) -> Optional[Order]:
        """The table's open order to append to, or None when a new one is needed."""
        return self.orders.find_open_for_table(table.id, for_update=True)

    def occupy(self, table: Table, order: Order) -> None:
        order.occupied_table_id = table.id
        table.is_available = False

    def release(self, order: Order) -> None:
        order.occupied_table_id = None
        if order.table is not None:
            self.tables.set_available(order.table, True)
