# finsage/schemas/payment.py
"""Checkout, verification and cancellation schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from ._strict_base import StrictRequestModel


class CreateOrderRequest(StrictRequestModel):
    item_id: str = Field(..., min_length=1, description="Catalog item being purchased")
    amount: Optional[int] = Field(
        None, ge=0, description="Price the client displayed, in whole currency units"
    )
    booking_id: Optional[str] = Field(None, description="Existing draft booking to reuse")


class CreateOrderResponse(BaseModel):
    order_id: str
    amount: int = Field(description="Order amount in currency subunits")
    currency: str
    key_id: str
    booking_id: str
    receipt: str


class VerifyPaymentRequest(StrictRequestModel):
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
    booking_id: Optional[str] = None


class VerifyPaymentResponse(BaseModel):
    success: bool
    booking_id: str
    purchase_id: str
    already_processed: bool = False


class DismissCheckoutResponse(BaseModel):
    success: bool
    order_id: str
    already_processed: bool = False


class CancelBookingResponse(BaseModel):
    success: bool
    already_cancelled: bool = False
    message: str
    refund_amount: int = 0
    refund_percentage: int = 0
    refund_id: Optional[str] = None
    refund_status: Optional[str] = None


class RefundQuoteResponse(BaseModel):
    session_start: str
    refund_percentage: int
    refund_amount: int
    hours: float
    policy_basis: str
