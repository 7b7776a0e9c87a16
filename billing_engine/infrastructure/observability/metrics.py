"""Prometheus metrics for schedule generation, payment allocation and request latency"""

from prometheus_client import Counter, Histogram

from billing_engine.domain.models import GeneratedSchedule, PaymentRequest

# Schedule metrics
schedule_counter = Counter(
    "billing_schedule_total",
    "Payment schedules generated",
    ["cadence"],  # Weekly | Bi-Weekly | Monthly | Dates
)

schedule_occurrences_histogram = Histogram(
    "billing_schedule_occurrences",
    "Number of payments per generated schedule",
    buckets=[1, 2, 3, 4, 6, 12, 26, 52, 104],
)

# Allocation metrics
payment_counter = Counter(
    "billing_payment_allocation_total",
    "Payments allocated for submission",
    ["outcome"],  # applied | mixed | credit_only
)

leftover_credit_counter = Counter(
    "billing_leftover_credit_cents_total",
    "Minor units of payments recorded as account credit",
    ["currency"],
)

domain_error_counter = Counter(
    "billing_domain_errors_total",
    "Requests rejected by domain validation",
    ["kind"],  # validation_error | allocation_error
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_schedule(schedule: GeneratedSchedule) -> None:
    schedule_counter.labels(cadence=schedule.cadence.value).inc()
    schedule_occurrences_histogram.observe(len(schedule.occurrences))


def record_payment(payment: PaymentRequest) -> None:
    """Record allocation outcome: all applied, partly credited, or credit only"""
    if not payment.allocations:
        outcome = "credit_only"
    elif payment.leftover_credit_cents > 0:
        outcome = "mixed"
    else:
        outcome = "applied"

    payment_counter.labels(outcome=outcome).inc()
    if payment.leftover_credit_cents > 0:
        leftover_credit_counter.labels(currency=payment.currency).inc(payment.leftover_credit_cents)


def record_domain_error(kind: str) -> None:
    domain_error_counter.labels(kind=kind).inc()
