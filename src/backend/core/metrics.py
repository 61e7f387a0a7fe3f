"""
Prometheus metrics for the coordination core.

Usage:
    from core.metrics import track_admin_operation, track_push_delivery

    track_admin_operation("delete_officer", "success")
    track_push_delivery("delivered", latency_ms=120.0)
"""

from prometheus_client import Counter, Histogram

# ==============================================================================
# Administrative Operations
# ==============================================================================

admin_operations_total = Counter(
    'lawbot_admin_operations_total',
    'Coordinated administrative operations by outcome',
    ['operation', 'status']
)

identity_cleanup_failures_total = Counter(
    'lawbot_identity_cleanup_failures_total',
    'Identity deletions that failed during officer removal (non-fatal)'
)

# ==============================================================================
# Push Delivery
# ==============================================================================

push_deliveries_total = Counter(
    'lawbot_push_deliveries_total',
    'Push delivery attempts by outcome',
    ['outcome']
)

push_delivery_latency = Histogram(
    'lawbot_push_delivery_latency_ms',
    'Push dispatch processing time in milliseconds',
    ['outcome'],
    buckets=(10, 25, 50, 100, 250, 500, 1000, 2500, 5000, float('inf'))
)

# ==============================================================================
# Notification Synchronizer
# ==============================================================================

notification_polls_total = Counter(
    'lawbot_notification_polls_total',
    'Unread notification fetches by result',
    ['result']
)

# ==============================================================================
# Broadcast Queue
# ==============================================================================

toasts_published_total = Counter(
    'lawbot_toasts_published_total',
    'Ephemeral UI messages published',
    ['severity']
)


# ==============================================================================
# Helper Functions
# ==============================================================================

def track_admin_operation(operation: str, status: str):
    """Track a coordinated administrative operation outcome."""
    admin_operations_total.labels(operation=operation, status=status).inc()


def track_identity_cleanup_failure():
    """Track a tolerated identity-side deletion failure."""
    identity_cleanup_failures_total.inc()


def track_push_delivery(outcome: str, latency_ms: float):
    """Track a push dispatch outcome (delivered, failed, skipped-no-token, record-failed)."""
    push_deliveries_total.labels(outcome=outcome).inc()
    push_delivery_latency.labels(outcome=outcome).observe(latency_ms)


def track_notification_poll(result: str):
    """Track an unread fetch result (applied, stale, error)."""
    notification_polls_total.labels(result=result).inc()


def track_toast_published(severity: str):
    """Track a published toast."""
    toasts_published_total.labels(severity=severity).inc()
