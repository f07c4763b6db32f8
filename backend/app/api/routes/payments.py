"""Settlement routes: close-out payment, debt repayments, staff tips."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Query, Request

from app.core.rate_limit import limiter
from app.core.rbac import CurrentActor, RequireCashier
from app.db.session import DbSession
from app.schemas.payment import (
    DebtPaymentRequest, DebtResponse, PaymentResponse, SettleRequest, SettlementResponse,
    SettleTipsRequest, SettleTipsResponse, TipResponse, TipSummaryResponse,
)
from app.services.notification_service import Sink
from app.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/orders/{order_id}/settle", response_model=SettlementResponse)
@limiter.limit("30/minute")
def settle_order(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: RequireCashier,
    order_id: str,
    body: SettleRequest,
):
    """Record the payment, book any debt and tip, and complete the order."""
    result = SettlementService(db, sink).settle(
        actor,
        order_id,
        body.payment_mode,
        body.amount_paid,
        tip_amount=body.tip_amount,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
    )
    return SettlementResponse(
        order_id=result.order.id,
        order_status=result.order.status,
        grand_total=result.order.grand_total,
        payment=PaymentResponse.model_validate(result.payment),
        tip=TipResponse.model_validate(result.tip) if result.tip is not None else None,
        debt=DebtResponse.model_validate(result.debt) if result.debt is not None else None,
    )


@router.post("/debts/{debt_id}/payments", response_model=DebtResponse)
@limiter.limit("30/minute")
def record_debt_payment(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: CurrentActor,
    debt_id: str,
    body: DebtPaymentRequest,
):
    return SettlementService(db, sink).record_debt_payment(actor, debt_id, body.amount)


@router.get("/tips", response_model=List[TipSummaryResponse])
@limiter.limit("60/minute")
def list_tips(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: RequireCashier,
    settled: Optional[bool] = Query(None),
):
    """Tips grouped by staff member."""
    summaries = SettlementService(db, sink).list_tips(actor, settled)
    return [TipSummaryResponse.model_validate(s) for s in summaries]


@router.put("/tips/settle", response_model=SettleTipsResponse)
@limiter.limit("30/minute")
def settle_tips(
    request: Request,
    db: DbSession,
    sink: Sink,
    actor: RequireCashier,
    body: SettleTipsRequest,
):
    return SettleTipsResponse(settled=SettlementService(db, sink).settle_tips(actor, body.tip_ids))
