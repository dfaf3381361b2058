"""Prometheus metrics for monitoring negotiation commits and code allocation"""

from prometheus_client import Counter, Histogram

# Commit metrics
commit_counter = Counter(
    "negotiation_commit_total",
    "Negotiation commit attempts by outcome",
    ["outcome"],  # created | code_exhausted | code_service_error | persistence_error
)

commit_duration_histogram = Histogram(
    "negotiation_commit_duration_seconds",
    "Time to persist a negotiation, including code retries",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

code_collision_counter = Counter(
    "negotiation_code_collisions_total",
    "Generated negotiation codes that were already taken",
)

negotiated_value_bucket_counter = Counter(
    "negotiation_value_bucket",
    "Negotiated totals by bucket",
    ["bucket"],  # R$0-R$1k, R$1k-R$10k, R$10k-R$100k, R$100k+
)

# Code generator metrics
code_service_failures_counter = Counter(
    "code_service_failures_total",
    "Failed negotiation code generator calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_commit(outcome: str, negotiated_cents: int = 0) -> None:
    """Record commit outcome and, for created negotiations, the value distribution"""
    commit_counter.labels(outcome=outcome).inc()

    if outcome != "created":
        return

    if negotiated_cents <= 100_000:
        bucket = "R$0-R$1k"
    elif negotiated_cents <= 1_000_000:
        bucket = "R$1k-R$10k"
    elif negotiated_cents <= 10_000_000:
        bucket = "R$10k-R$100k"
    else:
        bucket = "R$100k+"

    negotiated_value_bucket_counter.labels(bucket=bucket).inc()
