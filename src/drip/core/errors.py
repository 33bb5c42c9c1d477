"""Faucet error hierarchy.

Every error carries the HTTP status it is surfaced with, so the API layer
maps them in one place.
"""

ADDRESS_GUIDANCE = "You must provide 'address' (preferred), 'pub_key', or 'auth_key'"


class FaucetError(Exception):
    """Base class for errors surfaced to faucet callers."""

    status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AddressResolutionError(FaucetError):
    """The caller did not supply exactly one usable identity."""

    status = 400

    def __init__(self, message: str = ADDRESS_GUIDANCE):
        super().__init__(message)


class InvalidRequestError(FaucetError):
    """A mint parameter other than the identity is malformed."""

    status = 400


class UnknownFaucetAccountError(FaucetError):
    """The faucet's own signing account does not exist on the ledger."""

    def __init__(self, address: object):
        super().__init__(f"faucet account {address} not found")
        self.address = address


class SubmissionError(FaucetError):
    """The node rejected a transaction, or its execution could not be observed.

    Parameters
    ----------
    message : str
        The node's message, passed through verbatim.
    status_code : int | None
        HTTP status returned by the node, if any.
    transient : bool
        True when retrying the request may succeed (polling timed out).
    """

    def __init__(self, message: str, status_code: int | None = None, transient: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


class ExecutionFailure(FaucetError):
    """A submitted transaction was executed but did not succeed."""

    def __init__(self, txn_hash: str, vm_status: str):
        super().__init__(f"transaction {txn_hash} failed: {vm_status}")
        self.txn_hash = txn_hash
        self.vm_status = vm_status


class LockTimeoutError(FaucetError):
    """The faucet account lock could not be acquired in time."""

    status = 503


class UnrecognizedPayloadError(ValueError):
    """A transaction payload is not one the faucet signs."""
