"""External service integrations for the FinSage platform."""

from .razorpay_client import FakeRazorpayClient, RazorpayClient, RazorpayError, get_payment_gateway

__all__ = ["FakeRazorpayClient", "RazorpayClient", "RazorpayError", "get_payment_gateway"]
