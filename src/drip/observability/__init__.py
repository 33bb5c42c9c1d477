"""Observability module for the Drip faucet."""

from .health import HealthCheck, HealthStatus, LedgerHealthCheck, ReadinessProbe
from .logging import clear_request_id, configure_logging, get_logger, set_request_id
from .metrics import (
    COINS_MINTED,
    REQUEST_DURATION,
    REQUESTS,
    SEQUENCE_NUMBER,
    TRANSACTION_WAIT,
    TRANSACTIONS,
)

__all__ = [
    # Health
    "HealthCheck",
    "HealthStatus",
    "LedgerHealthCheck",
    "ReadinessProbe",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_logger",
    "set_request_id",
    # Metrics
    "COINS_MINTED",
    "REQUEST_DURATION",
    "REQUESTS",
    "SEQUENCE_NUMBER",
    "TRANSACTION_WAIT",
    "TRANSACTIONS",
]
