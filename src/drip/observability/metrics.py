"""Prometheus metrics for the Drip faucet.

Metrics:
- faucet_requests_total: Counter of HTTP requests by endpoint and status
- faucet_transactions_total: Counter of submitted transactions by kind and outcome
- faucet_coins_minted_total: Counter of coins minted
- faucet_sequence_number: Gauge of the local sequence number per faucet account
- faucet_request_duration_seconds: Histogram of request duration
- faucet_transaction_wait_seconds: Histogram of time spent waiting for execution
"""

from prometheus_client import Counter, Gauge, Histogram

# Counters
REQUESTS = Counter(
    "faucet_requests_total",
    "Total number of faucet HTTP requests",
    ["endpoint", "status"],
)

TRANSACTIONS = Counter(
    "faucet_transactions_total",
    "Total transactions submitted by the faucet",
    ["kind", "outcome"],
)

COINS_MINTED = Counter(
    "faucet_coins_minted_total",
    "Total coins minted",
)

# Gauges
SEQUENCE_NUMBER = Gauge(
    "faucet_sequence_number",
    "Next local sequence number of a faucet account",
    ["account"],
)

# Histograms
REQUEST_DURATION = Histogram(
    "faucet_request_duration_seconds",
    "Request processing duration",
    ["endpoint"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

TRANSACTION_WAIT = Histogram(
    "faucet_transaction_wait_seconds",
    "Time spent waiting for a transaction to execute",
    buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)
