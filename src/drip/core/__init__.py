"""Core Drip components."""

from .account import FaucetAccount
from .errors import (
    AddressResolutionError,
    ExecutionFailure,
    FaucetError,
    InvalidRequestError,
    LockTimeoutError,
    SubmissionError,
    UnknownFaucetAccountError,
    UnrecognizedPayloadError,
)
from .keys import EnvironmentKey, EphemeralKey, SigningKeyProvider

__all__ = [
    "AddressResolutionError",
    "EnvironmentKey",
    "EphemeralKey",
    "ExecutionFailure",
    "FaucetAccount",
    "FaucetError",
    "InvalidRequestError",
    "LockTimeoutError",
    "SigningKeyProvider",
    "SubmissionError",
    "UnknownFaucetAccountError",
    "UnrecognizedPayloadError",
]
