"""Faucet components for Drip."""

from .delegation import DelegationCoordinator
from .resolver import resolve_address
from .service import MintRequest, MintResult, MintService
from .submitter import Submitter
from .transactions import (
    ClaimMintCapability,
    CreateAccount,
    DelegateMintCapability,
    Mint,
    PayloadKind,
    PendingTransaction,
    TransactionBuilder,
    decode_payload,
    decode_transactions,
    encode_transactions,
)

__all__ = [
    "ClaimMintCapability",
    "CreateAccount",
    "DelegateMintCapability",
    "DelegationCoordinator",
    "Mint",
    "MintRequest",
    "MintResult",
    "MintService",
    "PayloadKind",
    "PendingTransaction",
    "Submitter",
    "TransactionBuilder",
    "decode_payload",
    "decode_transactions",
    "encode_transactions",
    "resolve_address",
]
