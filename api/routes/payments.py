"""
Payments API routes.

Keep this thin: parse the request, call PaymentService, unwrap the result.
Failures leave as PaymentException and are rendered by the global handlers.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse
from starlette import status as http_status

from api.dependencies import get_current_principal, get_payment_service
from application.dtos.auth import AuthPrincipal
from application.dtos.payments import (
    CreateOrderRequest,
    HistoryQuery,
    RefundRequest,
    VerifyPaymentRequest,
)
from application.services.payment_service import MAX_HISTORY_LIMIT, PaymentService
from core.response import success_response
from core.logging_config import get_logger


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)


@router.get("/health", summary="Payment subsystem health")
async def health(service: PaymentService = Depends(get_payment_service)):
    report = await service.health_check()
    body = success_response(data=report, message=report.message)
    return JSONResponse(
        status_code=http_status.HTTP_200_OK if report.healthy else http_status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(mode="json"),
    )


@router.get("/history", summary="Payment history of the caller")
async def history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1),
    status: Optional[str] = Query(default=None),
    principal: AuthPrincipal = Depends(get_current_principal),
    service: PaymentService = Depends(get_payment_service),
):
    query = HistoryQuery(page=page, limit=min(limit, MAX_HISTORY_LIMIT), status=status)
    result = (await service.get_history(principal, query)).unwrap()
    return success_response(data=result)


@router.post("/create-order", summary="Create a gateway order")
async def create_order(
    payload: CreateOrderRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key", max_length=128),
    principal: AuthPrincipal = Depends(get_current_principal),
    service: PaymentService = Depends(get_payment_service),
):
    if idempotency_key and not payload.idempotency_key:
        payload = payload.model_copy(update={"idempotency_key": idempotency_key})
    result = await service.create_order(principal, payload)
    order = result.unwrap()
    return success_response(
        data=order,
        message="Order already created" if result.replayed else "Order created",
    )


@router.post("/verify", summary="Verify a checkout payment")
async def verify_payment(
    payload: VerifyPaymentRequest,
    principal: AuthPrincipal = Depends(get_current_principal),
    service: PaymentService = Depends(get_payment_service),
):
    result = await service.verify_payment(principal, payload)
    payment = result.unwrap()
    return success_response(
        data={"payment": payment.model_dump(mode="json", by_alias=True)},
        message="Payment already verified" if result.replayed else "Payment verified successfully",
    )


@router.post("/refund", summary="Refund a paid payment")
async def refund(
    payload: RefundRequest,
    principal: AuthPrincipal = Depends(get_current_principal),
    service: PaymentService = Depends(get_payment_service),
):
    refund_view = (await service.refund(principal, payload)).unwrap()
    return success_response(
        data={"refund": refund_view.model_dump(mode="json", by_alias=True)},
        message="Refund initiated successfully",
    )


@router.post("/webhook", summary="Gateway webhook")
async def webhook(request: Request, service: PaymentService = Depends(get_payment_service)):
    raw_body = await request.body()
    headers = {k: v for k, v in request.headers.items()}
    ack = (await service.handle_webhook(headers, raw_body)).unwrap()
    return success_response(data=ack, message="Webhook processed" if ack.handled else "Webhook ignored")
