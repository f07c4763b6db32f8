"""Repositories: one per aggregate, exposing only the reads/writes the engine needs."""

from app.repositories.floor import BranchRepo, CatalogRepo, TableRepo
from app.repositories.marketplace import MarketplaceRepo
from app.repositories.orders import OrderRepo
from app.repositories.payments import PaymentRepo
from app.repositories.tickets import TicketRepo

__all__ = [
    "BranchRepo",
    "CatalogRepo",
    "TableRepo",
    "MarketplaceRepo",
    "OrderRepo",
    "PaymentRepo",
    "TicketRepo",
]
