"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Registration ledger metrics
registration_attempts = Counter(
    'registration_attempts_total',
    'Total event registration attempts',
    ['status']  # success, conflict, full, not_found, error
)

registration_latency = Histogram(
    'registration_latency_seconds',
    'Event registration latency, lock wait included',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

cancellations = Counter(
    'registration_cancellations_total',
    'Total registration cancellations',
    ['status']  # success, not_found
)

# Credential store metrics
auth_attempts = Counter(
    'auth_attempts_total',
    'Authentication operations',
    ['operation', 'result']  # login/register/verify/reset, success/failure
)

# Notifier metrics
notifications = Counter(
    'notifications_total',
    'Outbound email notifications',
    ['kind', 'result']  # welcome/password_reset/registration, sent/failed
)

# Database metrics
db_operations = Counter(
    'db_operations_total',
    'Total database operations',
    ['operation']  # read, write, rollback
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_registration_attempt(status: str):
    """Status: success, conflict, full, not_found, error"""
    registration_attempts.labels(status=status).inc()


def record_cancellation(status: str):
    cancellations.labels(status=status).inc()


def record_auth(operation: str, success: bool):
    result = "success" if success else "failure"
    auth_attempts.labels(operation=operation, result=result).inc()


def record_notification(kind: str, sent: bool):
    result = "sent" if sent else "failed"
    notifications.labels(kind=kind, result=result).inc()


def record_db_operation(operation: str):
    """Operation: read, write, rollback"""
    db_operations.labels(operation=operation).inc()
