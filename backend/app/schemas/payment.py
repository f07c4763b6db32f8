"""Settlement, debt and tip schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.order import OrderStatus
from app.models.payment_ledger import DebtStatus, PaymentMode, PaymentStatus


class SettleRequest(BaseModel):
    payment_mode: PaymentMode
    amount_paid: Decimal
    tip_amount: Decimal = Decimal("0")
    # Required for DEBT when the order carries no customer details
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    order_id: str
    payment_mode: PaymentMode
    amount_paid: Decimal
    tip_amount: Decimal
    balance_amount: Decimal
    payment_status: PaymentStatus
    debt_id: Optional[str] = None
    settled_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TipResponse(BaseModel):
    id: str
    order_id: str
    staff_id: str
    table_label: str
    amount: Decimal
    payment_mode: PaymentMode
    is_settled: bool
    settled_at: Optional[datetime] = None
    settled_by: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DebtResponse(BaseModel):
    id: str
    customer_name: str
    customer_phone: str
    total_debt: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    payment_status: DebtStatus

    model_config = {"from_attributes": True}


class SettlementResponse(BaseModel):
    order_id: str
    order_status: OrderStatus
    grand_total: Decimal
    payment: PaymentResponse
    tip: Optional[TipResponse] = None
    debt: Optional[DebtResponse] = None


class DebtPaymentRequest(BaseModel):
    amount: Decimal


class TipSummaryResponse(BaseModel):
    staff_id: str
    total_tips: Decimal
    pending_tips: Decimal
    settled_tips: Decimal
    tips: List[TipResponse] = []

    model_config = {"from_attributes": True}


class SettleTipsRequest(BaseModel):
    tip_ids: List[str] = Field(min_length=1)


class SettleTipsResponse(BaseModel):
    settled: int
