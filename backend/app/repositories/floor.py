"""Branch, table and catalog lookups."""

from typing import Optional

from sqlalchemy.orm import Session

from app.models.restaurant import Branch, MenuItem, Table


class BranchRepo:
    def __init__(self, db: Session):
        self.db = db

    def get(self, branch_id: str) -> Optional[Branch]:
        return self.db.query(Branch).filter(Branch.id == branch_id).first()


class TableRepo:
    def __init__(self, db: Session):
        self.db = db

    def get(self, table_id: str) -> Optional[Table]:
        return self.db.query(Table).filter(Table.id == table_id).first()

    def set_available(self, table: Table, available: bool) -> None:
        table.is_available = available
        self.db.flush()


class CatalogRepo:
    """Read-only view of the menu used to price cart lines."""

    def __init__(self, db: Session):
        self.db = db

    def get_item(self, item_id: str) -> Optional[MenuItem]:
        return self.db.query(MenuItem).filter(MenuItem.id == item_id).first()
