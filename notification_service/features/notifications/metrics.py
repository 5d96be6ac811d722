"""Prometheus metrics for notification dispatch.

Usage:
    from notification_service.features.notifications.metrics import notification_delivered_total

    notification_delivered_total.labels(channel="EMAIL", status="delivered").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Dispatch Lifecycle Metrics
# =============================================================================

notification_created_total = Counter(
    "notification_created_total",
    "Total number of notification records created",
    labelnames=["notification_type", "priority"],
)
"""
Labels:
    notification_type: NotificationType value
    priority: LOW, MEDIUM, HIGH or URGENT
"""

notification_suppressed_total = Counter(
    "notification_suppressed_total",
    "Total number of notifications suppressed by preferences",
    labelnames=["notification_type", "reason"],
)
"""
Labels:
    reason: type_disabled or no_allowed_channels
"""

notification_quiet_hours_delayed_total = Counter(
    "notification_quiet_hours_delayed_total",
    "Total number of notifications deferred due to quiet hours",
    labelnames=["notification_type"],
)

notification_dispatch_abandoned_total = Counter(
    "notification_dispatch_abandoned_total",
    "Channel sends still running when the dispatch deadline elapsed",
    labelnames=["channel"],
)

# =============================================================================
# Delivery Metrics
# =============================================================================

notification_delivered_total = Counter(
    "notification_delivered_total",
    "Total number of notification deliveries by channel and status",
    labelnames=["channel", "status"],
)
"""
Labels:
    channel: IN_APP, EMAIL, SMS, PUSH or WEBHOOK
    status: delivered or failed
"""

notification_delivery_duration_seconds = Histogram(
    "notification_delivery_duration_seconds",
    "Notification delivery duration in seconds",
    labelnames=["channel"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)
"""
Buckets:
    - 0.05s-0.25s: in-app fan-out
    - 0.5s-2.5s: email/SMS/webhook API calls
    - 5s-30s: slow transports
"""

notification_delivery_errors_total = Counter(
    "notification_delivery_errors_total",
    "Channel delivery failures by category",
    labelnames=["channel", "error_category"],
)
"""
Labels:
    error_category: no_contact_info, no_targets, timeout, network, http_status, transport
"""

# =============================================================================
# Subscription and Preference Metrics
# =============================================================================

push_subscription_pruned_total = Counter(
    "notification_push_subscription_pruned_total",
    "Push subscriptions deleted after the push service reported them gone",
)

preference_lookup_degraded_total = Counter(
    "notification_preference_lookup_degraded_total",
    "Preference lookups that failed and fell back to defaults",
)
