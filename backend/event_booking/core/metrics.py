"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Booking workflow steps by outcome',
    ['status']  # submitted, finalized, capacity_exceeded, invalid
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking submission latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Payment boundary metrics
payment_outcomes = Counter(
    'payment_outcomes_total',
    'Payment confirmation outcomes',
    ['outcome']  # success, cancelled, failed
)

# Notification boundary metrics
notifications = Counter(
    'notifications_total',
    'Confirmation emails by kind and result',
    ['kind', 'result']  # booking/payment, sent/failed
)

# Identity metrics
user_resolutions = Counter(
    'user_resolutions_total',
    'Identity resolutions',
    ['result']  # created, reused
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Convenience functions for instrumentation
def record_booking_attempt(status: str):
    """Record booking step. Status: submitted, finalized, capacity_exceeded, invalid"""
    booking_attempts.labels(status=status).inc()

def record_payment_outcome(outcome: str):
    """Record payment outcome. Outcome: success, cancelled, failed"""
    payment_outcomes.labels(outcome=outcome).inc()

def record_notification(kind: str, sent: bool):
    """Record notification attempt."""
    result = "sent" if sent else "failed"
    notifications.labels(kind=kind, result=result).inc()

def record_user_resolution(created: bool):
    result = "created" if created else "reused"
    user_resolutions.labels(result=result).inc()
