"""Prometheus metrics for monitoring schedules, settlements, and webhook performance"""

from prometheus_client import Counter, Histogram

# Transaction metrics
transactions_created_counter = Counter(
    "payables_transactions_created_total",
    "Transactions created",
    ["direction", "scheduled"],  # payable | receivable, true | false
)

schedule_rejection_counter = Counter(
    "payables_schedule_rejections_total",
    "Schedules refused at commit or preview",
    ["reason"],  # invalid_input | sum_mismatch | last_installment
)

installments_paid_counter = Counter(
    "payables_installments_paid_total",
    "Mark-paid requests",
    ["outcome"],  # paid | already_paid
)

transactions_deleted_counter = Counter(
    "payables_transactions_deleted_total",
    "Transactions deleted with their installments",
)

# Security
tenant_mismatch_counter = Counter(
    "payables_tenant_mismatch_total",
    "Cross-tenant access attempts refused",
    ["resource"],
)

# Dependencies
store_failures_counter = Counter(
    "record_store_failures_total",
    "Record store unavailable errors",
)

identity_failures_counter = Counter(
    "identity_provider_failures_total",
    "Failed identity provider calls",
)

webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Change webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transaction_created(direction: str, scheduled: bool) -> None:
    transactions_created_counter.labels(direction=direction, scheduled=str(scheduled).lower()).inc()


def record_installment_paid(already_paid: bool) -> None:
    """Count mark-paid calls, separating first payments from idempotent repeats"""
    installments_paid_counter.labels(outcome="already_paid" if already_paid else "paid").inc()
