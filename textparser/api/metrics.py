"""Prometheus metrics for API service.

Exposes key metrics for monitoring:
- Request counts by endpoint and status
- Request duration histograms
- Parse and validate outcomes
- Content size and parsing duration

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.openmetrics.exposition import CONTENT_TYPE_LATEST

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Parsing metrics
parse_requests_total = Counter(
    "parse_requests_total",
    "Total parse requests",
    ["outcome"],  # success, rejected, error
)

validate_requests_total = Counter(
    "validate_requests_total",
    "Total validate requests",
    ["outcome"],  # valid, invalid, error
)

parse_processing_duration_seconds = Histogram(
    "parse_processing_duration_seconds",
    "Message parsing duration in seconds",
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)

content_size_chars = Histogram(
    "content_size_chars",
    "Submitted content size in characters",
    buckets=(100, 1000, 10000, 100000, 1000000),
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
