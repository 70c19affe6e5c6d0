"""Prometheus metrics for fee calculations, invoicing and webhook performance"""

from decimal import Decimal

from prometheus_client import Counter, Histogram

from cepa_fees.domain.models import FeeCalculationResult, FeeCategory

# Calculation metrics
fee_calculation_counter = Counter(
    "cepa_fee_calculation_total",
    "Total fee calculations performed",
    ["source"],  # database | fallback
)

fee_total_bucket_counter = Counter(
    "cepa_fee_total_bucket",
    "Calculated total fees by bucket",
    ["bucket"],  # <K5k, K5k-K20k, K20k-K50k, K50k+
)

special_fee_counter = Counter(
    "cepa_special_fee_total",
    "Special surcharges applied",
    ["component"],
)

fee_lookup_failures_counter = Counter(
    "fee_lookup_failures_total",
    "Failed fee structure lookups",
)

invoice_counter = Counter(
    "cepa_invoice_issued_total",
    "Permit fee invoices issued",
)

payment_counter = Counter(
    "cepa_invoice_settlement_total",
    "Payments and waivers recorded against invoices",
    ["status"],  # partial | paid | waived
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Revenue webhook response time",
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


def total_fee_bucket(total_fee: Decimal) -> str:
    if total_fee < 5_000:
        return "<K5k"
    elif total_fee < 20_000:
        return "K5k-K20k"
    elif total_fee < 50_000:
        return "K20k-K50k"
    return "K50k+"


def record_fee_calculation(result: FeeCalculationResult) -> None:
    """Record calculation metrics for monitoring fallback rates and fee distribution"""
    fee_calculation_counter.labels(source=result.source.value).inc()
    fee_total_bucket_counter.labels(bucket=total_fee_bucket(result.total_fee)).inc()

    for component in result.components:
        if component.fee_category == FeeCategory.SPECIAL:
            special_fee_counter.labels(component=component.component_name).inc()
