"""
Prometheus metrics for the FinSage backend.

Service timings come from ``@BaseService.measure_operation``; the domain
counters below are incremented directly by the services that own them.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

http_request_duration_seconds = Histogram(
    "finsage_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

service_operation_duration_seconds = Histogram(
    "finsage_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "finsage_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "finsage_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

refunds_total = Counter(
    "finsage_refunds_total",
    "Gateway refunds issued on booking cancellation",
    ["percentage"],
    registry=REGISTRY,
)

reconciliation_debt_total = Counter(
    "finsage_reconciliation_debt_total",
    "Gateway side effects that could not be recorded locally",
    ["operation"],
    registry=REGISTRY,
)

credits_granted_total = Counter(
    "finsage_credits_granted_total",
    "Credits added to balances by approved requests",
    ["service_type"],
    registry=REGISTRY,
)

sessions_auto_completed_total = Counter(
    "finsage_sessions_auto_completed_total",
    "Bookings moved to completed by the expiry sweeper",
    ["kind"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    @staticmethod
    def record_http_request(method: str, endpoint: str, duration: float, status_code: int) -> None:
        http_request_duration_seconds.labels(
            method=method, endpoint=endpoint, status_code=str(status_code)
        ).observe(duration)

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'PaymentService')
            operation: Operation/method name (e.g., 'cancel_booking')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def inc_refund(percentage: int) -> None:
        refunds_total.labels(percentage=str(percentage)).inc()

    @staticmethod
    def inc_reconciliation_debt(operation: str) -> None:
        reconciliation_debt_total.labels(operation=operation).inc()

    @staticmethod
    def inc_credits_granted(service_type: str, amount: int) -> None:
        credits_granted_total.labels(service_type=service_type).inc(amount)

    @staticmethod
    def inc_sessions_auto_completed(kind: str, count: int) -> None:
        if count:
            sessions_auto_completed_total.labels(kind=kind).inc(count)

    @staticmethod
    def get_metrics() -> bytes:
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
