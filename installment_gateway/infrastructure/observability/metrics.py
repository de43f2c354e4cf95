"""Prometheus metrics for monitoring plan creation, payments and webhook performance"""

from prometheus_client import Counter, Histogram

# Plan metrics
plans_created_counter = Counter(
    "installment_plans_created_total",
    "Installment plans created",
    ["unit"],  # days | weeks | months
)

# Payment metrics
payment_counter = Counter(
    "installment_payments_total",
    "Installment payments recorded",
    ["outcome"],  # exact | excess | shortfall
)

payment_edit_counter = Counter(
    "installment_payment_edits_total",
    "Edits applied to already-paid installments",
)

payment_reversal_counter = Counter(
    "installment_payment_reversals_total",
    "Payments reversed (installment marked unpaid)",
)

redistributed_amount_histogram = Histogram(
    "installment_redistributed_amount",
    "Absolute payment difference spread over remaining installments",
    buckets=[10, 100, 500, 1_000, 5_000, 10_000, 50_000, 100_000],
)

unabsorbed_warning_counter = Counter(
    "installment_unabsorbed_difference_total",
    "Payments whose difference could not be fully absorbed",
    ["reason"],  # clamped | no_remaining_installments
)

concurrent_modification_counter = Counter(
    "installment_concurrent_modifications_total",
    "Plan writes rejected because another writer committed first",
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Event webhook response time",
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


def record_payment_outcome(difference: int, warning_reasons: list[str]) -> None:
    """Record payment metrics for monitoring over/under-payment rates"""
    if difference == 0:
        outcome = "exact"
    elif difference > 0:
        outcome = "excess"
    else:
        outcome = "shortfall"

    payment_counter.labels(outcome=outcome).inc()

    if difference:
        redistributed_amount_histogram.observe(abs(difference))

    for reason in warning_reasons:
        unabsorbed_warning_counter.labels(reason=reason).inc()
