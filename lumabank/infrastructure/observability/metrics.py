"""Prometheus metrics for monitoring transfers, deposits, settlement and email delivery"""

from prometheus_client import Counter, Histogram

# Movement metrics
transfer_counter = Counter(
    "lumabank_transfer_total",
    "Transfers attempted",
    ["type", "outcome"],  # internal | external; completed | pending | rejected | aborted
)

deposit_counter = Counter(
    "lumabank_deposit_total",
    "Deposits attempted",
    ["outcome"],
)

settlement_counter = Counter(
    "lumabank_settlement_total",
    "Pending transactions settled",
    ["action", "source"],  # approve | reject | auto; admin | timer
)

# Email metrics
email_latency_histogram = Histogram(
    "email_delivery_seconds",
    "Email provider response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

email_failure_counter = Counter(
    "email_failures_total",
    "Failed email delivery attempts",
    ["provider"],  # resend | smtp
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transfer(transaction_type: str, outcome: str) -> None:
    """Record a movement outcome; deposits are counted separately from transfers"""
    if transaction_type == "deposit":
        deposit_counter.labels(outcome=outcome).inc()
    else:
        transfer_counter.labels(type=transaction_type, outcome=outcome).inc()


def record_settlement(action: str, source: str) -> None:
    settlement_counter.labels(action=action, source=source).inc()
