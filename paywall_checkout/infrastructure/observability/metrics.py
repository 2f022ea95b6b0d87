"""Prometheus metrics for checkout conversion, catalog fallbacks, and request latency"""

from prometheus_client import Counter, Histogram, Gauge

# Checkout metrics
checkout_outcome_counter = Counter(
    "paywall_checkout_outcome_total",
    "Checkout attempts by terminal state",
    ["outcome"],  # succeeded | declined | auth_expired | cancelled | failed
)

validation_failure_counter = Counter(
    "paywall_validation_failures_total",
    "Rejected form submissions",
    ["stage"],  # payment_form | secure_checkout | onboarding
)

tracked_events_counter = Counter(
    "paywall_tracked_events_total",
    "Analytics events accepted by the tracking sink",
    ["category", "action"],
)

active_sessions_gauge = Gauge(
    "paywall_active_sessions",
    "Checkout flows held in memory",
)

# Catalog API metrics
catalog_fallback_counter = Counter(
    "paywall_catalog_fallback_total",
    "Catalog calls answered from built-in fallback data",
    ["resource"],
)

catalog_latency_histogram = Histogram(
    "paywall_catalog_latency_seconds",
    "Catalog API response time",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# Error reporting
reported_errors_counter = Counter(
    "paywall_reported_errors_total",
    "Errors sent to the error-reporting sink",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_checkout_outcome(state: str) -> None:
    """Record a terminal checkout transition"""
    checkout_outcome_counter.labels(outcome=state).inc()
