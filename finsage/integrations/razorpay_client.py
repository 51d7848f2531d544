"""Thin wrapper around the Razorpay SDK used by the payment orchestrator."""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any, Dict, List, Optional, cast
from uuid import uuid4

from pydantic import SecretStr
import razorpay
import requests

from ..core.config import settings
from ..core.exceptions import ServiceException

logger = logging.getLogger(__name__)


class RazorpayError(RuntimeError):
    """Raised when Razorpay rejects a call or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 hex digest Razorpay attaches to a completed checkout."""
    return hmac.new(
        secret.encode("utf-8"),
        f"{order_id}|{payment_id}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


class RazorpayClient:
    """
    Orders, refunds and checkout signature verification.

    Every network call carries ``timeout`` and is attempted exactly once;
    orders and refunds are not idempotent on the gateway side.
    """

    def __init__(
        self,
        *,
        key_id: str,
        key_secret: str | SecretStr,
        timeout: float = 30.0,
    ) -> None:
        secret_value = key_secret.get_secret_value() if isinstance(key_secret, SecretStr) else key_secret
        if not key_id or not secret_value:
            raise ValueError("Razorpay key id and secret must be provided")
        self.key_id = key_id
        self._key_secret = secret_value
        self._timeout = timeout
        self._client = razorpay.Client(auth=(key_id, secret_value))

    def create_order(
        self,
        *,
        amount_subunits: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload = {
            "amount": amount_subunits,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        order = self._call("order.create", lambda: self._client.order.create(payload, timeout=self._timeout))
        logger.info("Razorpay order %s created for %s %s", order.get("id"), amount_subunits, currency)
        return order

    def refund(
        self,
        payment_id: str,
        *,
        amount_subunits: int,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not payment_id:
            raise ValueError("payment_id must be provided")
        payload = {"amount": amount_subunits, "notes": notes or {}}
        refund = self._call(
            "payment.refund",
            lambda: self._client.payment.refund(payment_id, payload, timeout=self._timeout),
        )
        logger.info("Razorpay refund %s issued against %s", refund.get("id"), payment_id)
        return refund

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        expected = compute_signature(order_id, payment_id, self._key_secret)
        return hmac.compare_digest(expected, signature or "")

    def _call(self, operation: str, func: Any) -> Dict[str, Any]:
        try:
            return cast(Dict[str, Any], func())
        except razorpay.errors.BadRequestError as exc:
            logger.error("Razorpay %s rejected: %s", operation, exc)
            raise RazorpayError(f"Razorpay rejected {operation}: {exc}", status_code=400) from exc
        except (razorpay.errors.GatewayError, razorpay.errors.ServerError) as exc:
            logger.error("Razorpay %s failed upstream: %s", operation, exc)
            raise RazorpayError(f"Razorpay {operation} failed: {exc}", status_code=502) from exc
        except requests.RequestException as exc:
            logger.error("Razorpay %s unreachable: %s", operation, exc)
            raise RazorpayError(f"Failed to reach Razorpay for {operation}") from exc


class FakeRazorpayClient(RazorpayClient):
    """In-memory stand-in for local development without gateway credentials."""

    def __init__(self, key_secret: str = "fake-razorpay-secret") -> None:
        self.key_id = "rzp_test_fake"
        self._key_secret = key_secret
        self._timeout = 0.0
        self.orders: List[Dict[str, Any]] = []
        self.refunds: List[Dict[str, Any]] = []
        self.fail_refunds = False

    def create_order(
        self,
        *,
        amount_subunits: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        order = {
            "id": f"order_fake_{uuid4().hex[:14]}",
            "amount": amount_subunits,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
            "status": "created",
        }
        self.orders.append(order)
        return order

    def refund(
        self,
        payment_id: str,
        *,
        amount_subunits: int,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if self.fail_refunds:
            raise RazorpayError("Razorpay payment.refund failed: simulated outage", status_code=502)
        refund = {
            "id": f"rfnd_fake_{uuid4().hex[:14]}",
            "payment_id": payment_id,
            "amount": amount_subunits,
            "notes": notes or {},
            "status": "processed",
        }
        self.refunds.append(refund)
        return refund

    def sign(self, order_id: str, payment_id: str) -> str:
        return compute_signature(order_id, payment_id, self._key_secret)


def get_payment_gateway() -> RazorpayClient:
    """Gateway for the current environment; the fake is refused in production."""
    if settings.razorpay_configured:
        return RazorpayClient(
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_key_secret,
            timeout=settings.gateway_timeout_seconds,
        )
    if settings.is_production:
        raise ServiceException("Payment gateway is not configured", code="GATEWAY_NOT_CONFIGURED")
    logger.warning("Razorpay credentials missing; using the in-memory fake gateway")
    return FakeRazorpayClient()
