"""Prometheus metrics for monitoring."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# HTTP Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
)

# Engine metrics
intelligence_requests_total = Counter(
    "intelligence_requests_total",
    "Store intelligence computations",
    ["operation", "status"],  # status: success, error, not_found, data_source_error
)

intelligence_duration_seconds = Histogram(
    "intelligence_duration_seconds",
    "Store intelligence computation duration",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

anomalies_detected_total = Counter(
    "anomalies_detected_total",
    "Anomalies reported by scans",
    ["type", "severity"],
)

reorder_suggestions_total = Counter(
    "reorder_suggestions_total",
    "Reorder suggestions produced",
    ["urgency"],
)

data_source_errors_total = Counter(
    "data_source_errors_total",
    "Failed or timed out reads against the transactional store",
    ["operation"],
)

# System metrics
app_uptime_seconds = Gauge(
    "app_uptime_seconds",
    "Application uptime in seconds",
)

app_info = Gauge(
    "app_info",
    "Application info",
    ["version", "environment"],
)
