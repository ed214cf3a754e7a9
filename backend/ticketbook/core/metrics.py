"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
booking_attempts = Counter(
    'ticketbook_booking_attempts_total',
    'Total reservation attempts',
    ['status']  # success, insufficient, not_found, invalid, error
)

booking_latency = Histogram(
    'ticketbook_booking_latency_seconds',
    'Reservation transaction latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Compensation metrics
cancellation_attempts = Counter(
    'ticketbook_cancellation_attempts_total',
    'Total cancellation attempts',
    ['status']  # success, already_cancelled, not_found, error
)

# Audit metrics
audit_failures = Counter(
    'ticketbook_audit_failures_total',
    'Audit records that could not be delivered to the sink'
)


def metrics_endpoint() -> Response:
    """Render the default registry in the Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record reservation outcome. Status: success, insufficient, not_found, invalid, error"""
    booking_attempts.labels(status=status).inc()


def record_cancellation(status: str):
    """Record cancellation outcome. Status: success, already_cancelled, not_found, error"""
    cancellation_attempts.labels(status=status).inc()
