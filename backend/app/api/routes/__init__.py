"""API routes."""

import logging
from fastapi import APIRouter

from app.api.routes import orders, kitchen, delivery, payments

logger = logging.getLogger(__name__)

api_router = APIRouter()

# Floor: tables, carts, order lifecycle
api_router.include_router(orders.router, tags=["orders"])

# Kitchen display
api_router.include_router(kitchen.router, prefix="/kitchen", tags=["kitchen"])

# Delivery platforms (webhook is unauthenticated, signature-checked)
api_router.include_router(delivery.router, tags=["delivery"])

# Close-out, debts and tips
api_router.include_router(payments.router, tags=["payments"])
