# finsage/routes/v1/payments.py
"""
Payments and bookings routes - API v1

Endpoints:
    POST /payments/orders                       -> Create a checkout order
    POST /payments/verify                       -> Verify a completed checkout
    POST /payments/orders/{order_id}/dismiss    -> Payer closed the checkout
    POST /bookings/{booking_id}/cancel          -> Cancel with tiered refund
    GET  /bookings/refund-quote                 -> Preview session refund tiers
"""

import asyncio
from datetime import date, datetime, time
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_caller
from ...database import get_db
from ...principal import CallerContext
from ...schemas.payment import (
    CancelBookingResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    DismissCheckoutResponse,
    RefundQuoteResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from ...services.payment_service import PaymentService

logger = logging.getLogger(__name__)

payments_router = APIRouter(tags=["payments-v1"])
bookings_router = APIRouter(tags=["bookings-v1"])


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    return PaymentService(db)


@payments_router.post("/orders", response_model=CreateOrderResponse)
async def create_order(
    request: CreateOrderRequest,
    caller: CallerContext = Depends(get_caller),
    service: PaymentService = Depends(get_payment_service),
) -> CreateOrderResponse:
    order = await asyncio.to_thread(
        service.create_order, caller, request.item_id, request.amount, request.booking_id
    )
    return CreateOrderResponse(**order)


@payments_router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(
    request: VerifyPaymentRequest,
    caller: CallerContext = Depends(get_caller),
    service: PaymentService = Depends(get_payment_service),
) -> VerifyPaymentResponse:
    result = await asyncio.to_thread(
        service.verify_payment,
        caller,
        request.razorpay_order_id,
        request.razorpay_payment_id,
        request.razorpay_signature,
        request.booking_id,
    )
    return VerifyPaymentResponse(**result)


@payments_router.post("/orders/{order_id}/dismiss", response_model=DismissCheckoutResponse)
async def dismiss_checkout(
    order_id: str,
    caller: CallerContext = Depends(get_caller),
    service: PaymentService = Depends(get_payment_service),
) -> DismissCheckoutResponse:
    result = await asyncio.to_thread(service.dismiss_checkout, caller, order_id)
    return DismissCheckoutResponse(**result)


@bookings_router.post("/{booking_id}/cancel", response_model=CancelBookingResponse)
async def cancel_booking(
    booking_id: str,
    caller: CallerContext = Depends(get_caller),
    service: PaymentService = Depends(get_payment_service),
) -> CancelBookingResponse:
    result = await asyncio.to_thread(service.cancel_booking, caller, booking_id)
    return CancelBookingResponse(**result)


@bookings_router.get("/refund-quote", response_model=RefundQuoteResponse)
async def refund_quote(
    session_date: date = Query(...),
    session_time: time = Query(...),
    amount: int = Query(..., ge=0),
    now: Optional[datetime] = Query(None, description="Evaluate as of this instant; defaults to now"),
    caller: CallerContext = Depends(get_caller),
    service: PaymentService = Depends(get_payment_service),
) -> RefundQuoteResponse:
    result = service.quote_session_refund(session_date, session_time, amount, now=now)
    return RefundQuoteResponse(**result)
