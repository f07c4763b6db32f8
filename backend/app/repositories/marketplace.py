"""Marketplace overlay persistence."""

from typing import Optional

from sqlalchemy.orm import Session

from app.models.delivery import MarketplaceOrder, MarketplacePlatform


class MarketplaceRepo:
    def __init__(self, db: Session):
        self.db = db

    def find_by_platform_id(
        self, platform: MarketplacePlatform, platform_order_id: str
    ) -> Optional[MarketplaceOrder]:
        return (
            self.db.query(MarketplaceOrder)
            .filter(
                MarketplaceOrder.platform == platform,
                MarketplaceOrder.platform_order_id == platform_order_id,
            )
            .first()
        )

    def add(self, overlay: MarketplaceOrder) -> MarketplaceOrder:
        self.db.add(overlay)
        self.db.flush()
        return overlay
