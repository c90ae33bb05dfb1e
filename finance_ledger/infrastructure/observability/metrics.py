"""Prometheus metrics for ledger writes, installment progress and query fallbacks"""

from prometheus_client import Counter, Histogram

# Ledger write metrics
transactions_created_counter = Counter(
    "ledger_transactions_created_total",
    "Transactions written to the ledger",
    ["source"],  # manual | subscription | installment
)

installment_payment_counter = Counter(
    "ledger_installment_payments_total",
    "Installment payment attempts",
    ["outcome"],  # applied | rejected | conflict
)

installment_completed_counter = Counter(
    "ledger_installment_purchases_completed_total",
    "Installment purchases paid off",
)

# Query metrics
index_fallback_counter = Counter(
    "ledger_index_fallback_total",
    "Ordered queries served by the unordered fallback",
    ["collection"],
)

# Errors surfaced to callers
ledger_error_counter = Counter(
    "ledger_errors_total",
    "Ledger errors returned to callers",
    ["error"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_installment_payment(outcome: str, completed: bool = False) -> None:
    """Record the outcome of one add-payment attempt"""
    installment_payment_counter.labels(outcome=outcome).inc()
    if completed:
        installment_completed_counter.inc()


def record_error(error: Exception) -> None:
    ledger_error_counter.labels(error=type(error).__name__).inc()
