"""Prometheus metrics for the HTTP layer.

Declared once at module level; route labels use the matched route template,
never the raw request path.
"""

from prometheus_client import Counter, Histogram

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "Duration of HTTP requests in seconds",
    ["method", "route", "code"],
    buckets=[0.1, 0.3, 0.5, 0.7, 1, 3, 5, 7, 10],
)

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "route", "code"],
)
