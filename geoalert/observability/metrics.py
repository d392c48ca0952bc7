"""
Metrics definitions for GeoAlert.

This module defines Prometheus metrics for monitoring
alert creation, targeting, crowd verification and the risk oracle.
"""

from prometheus_client import Counter, Histogram, Gauge

# counters
alerts_created = Counter(
    "alerts_created_total",
    "Number of emergency alerts created",
    ["source", "severity"]
)

alert_responses = Counter(
    "alert_responses_total",
    "Number of user responses recorded against alerts",
    ["response_type"]
)

alerts_cancelled = Counter(
    "alerts_cancelled_total",
    "Number of alerts moved to cancelled",
    ["reason"]
)

alerts_expired = Counter(
    "alerts_expired_total",
    "Number of alerts moved to expired"
)

broadcast_recipients = Counter(
    "broadcast_recipients_total",
    "Number of users targeted by alert broadcasts"
)

broadcast_failures = Counter(
    "broadcast_delivery_failures_total",
    "Fan-out publishes that failed",
    ["channel"]
)

oracle_fallbacks = Counter(
    "oracle_fallbacks_total",
    "Risk oracle calls that fell back to the fixed result",
    ["call"]
)

location_updates = Counter(
    "location_updates_total",
    "Number of user location upserts",
    ["source"]
)

ingest_messages = Counter(
    "ingest_messages_total",
    "Number of inbound messages processed",
    ["kind"]
)

ingest_errors = Counter(
    "ingest_errors_total",
    "Number of inbound messages that failed processing",
    ["kind"]
)

# histograms
enrichment_seconds = Histogram(
    "enrichment_duration_seconds",
    "Time spent in risk enrichment, fallback included",
    buckets=[0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

broadcast_seconds = Histogram(
    "broadcast_duration_seconds",
    "Time spent targeting and publishing one alert",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0]
)

# gauges
queue_depth = Gauge(
    "ingest_queue_depth",
    "Current depth of the ingest queue"
)

uptime_seconds = Gauge(
    "uptime_seconds",
    "Service uptime in seconds"
)
