"""Prometheus metrics for monitoring intent mix, unanswered queries, and record store health"""

from prometheus_client import Counter, Histogram

# Query metrics
query_counter = Counter(
    "finsight_query_total",
    "Total queries answered",
    ["intent", "response_type"],
)

unknown_query_counter = Counter(
    "finsight_unknown_query_total",
    "Queries no intent pattern matched",
)

# Record store metrics
record_store_failures_counter = Counter(
    "record_store_failures_total",
    "Failed record store reads",
    ["backend"],  # sql | http
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_query(intent: str, response_type: str) -> None:
    """Record query metrics for monitoring which intents users actually ask about"""
    query_counter.labels(intent=intent, response_type=response_type).inc()
    if intent == "unknown":
        unknown_query_counter.inc()


def record_store_failure(backend: str) -> None:
    record_store_failures_counter.labels(backend=backend).inc()
