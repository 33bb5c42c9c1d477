"""Ledger node integration for Drip."""

from .client import AccountInfo, LedgerClient, TransactionStatus
from .networks import NetworkInfo

__all__ = ["AccountInfo", "LedgerClient", "NetworkInfo", "TransactionStatus"]
