"""Ledger node client wrapper for faucet operations."""

import logging
from dataclasses import dataclass

import httpx
from aptos_sdk.account_address import AccountAddress
from aptos_sdk.async_client import ApiError, ClientConfig, RestClient
from aptos_sdk.transactions import SignedTransaction

from drip.core.errors import SubmissionError

logger = logging.getLogger(__name__)


@dataclass
class AccountInfo:
    """On-chain state of an account."""

    address: AccountAddress
    sequence_number: int
    authentication_key: str


@dataclass
class TransactionStatus:
    """Outcome of an executed (no longer pending) transaction."""

    hash: str
    success: bool
    vm_status: str


class LedgerClient:
    """Wrapper around the aptos-sdk REST client for faucet operations.

    Node failures are raised as SubmissionError carrying the node's message.

    Parameters
    ----------
    server_url : str
        The node REST endpoint, e.g. ``https://fullnode.testnet.aptoslabs.com/v1``.
    rest_client : RestClient, optional
        Pre-built REST client. Built from ``server_url`` when omitted.
    """

    def __init__(self, server_url: str, rest_client: RestClient | None = None):
        self._server_url = server_url.rstrip("/")
        self._rest = rest_client or RestClient(self._server_url, ClientConfig(http2=False))

    @property
    def server_url(self) -> str:
        """The node REST endpoint."""
        return self._server_url

    async def close(self) -> None:
        """Close the underlying HTTP connections."""
        await self._rest.close()

    async def chain_id(self) -> int:
        """Get the chain id reported by the node.

        Returns
        -------
        int
            The chain id.
        """
        try:
            info = await self._rest.info()
        except (ApiError, httpx.HTTPError) as e:
            raise _node_error(e) from e
        return int(info["chain_id"])

    async def get_account(self, address: AccountAddress) -> AccountInfo | None:
        """Look up an account.

        Parameters
        ----------
        address : AccountAddress
            The account to query.

        Returns
        -------
        AccountInfo | None
            The account state, or None if the account does not exist.
        """
        try:
            data = await self._rest.account(address)
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise _node_error(e) from e
        except httpx.HTTPError as e:
            raise _node_error(e) from e
        return AccountInfo(
            address=address,
            sequence_number=int(data["sequence_number"]),
            authentication_key=data["authentication_key"],
        )

    async def account_balance(self, address: AccountAddress) -> int:
        """Get the coin balance of an account in octas."""
        try:
            return await self._rest.account_balance(address)
        except (ApiError, httpx.HTTPError) as e:
            raise _node_error(e) from e

    async def submit(self, signed_transaction: SignedTransaction) -> str:
        """Submit a signed transaction.

        Parameters
        ----------
        signed_transaction : SignedTransaction
            BCS-encodable signed transaction.

        Returns
        -------
        str
            The transaction hash assigned by the node.

        Raises
        ------
        SubmissionError
            If the node rejects the transaction or cannot be reached.
        """
        try:
            txn_hash = await self._rest.submit_bcs_transaction(signed_transaction)
        except (ApiError, httpx.HTTPError) as e:
            raise _node_error(e) from e

        logger.debug(
            "Transaction submitted",
            extra={
                "txn_hash": txn_hash,
                "sender": str(signed_transaction.transaction.sender),
                "sequence_number": signed_transaction.transaction.sequence_number,
            },
        )
        return txn_hash

    async def transaction_status(self, txn_hash: str) -> TransactionStatus | None:
        """Get the execution status of a transaction.

        Parameters
        ----------
        txn_hash : str
            The transaction hash.

        Returns
        -------
        TransactionStatus | None
            The outcome, or None while the transaction is unknown or pending.
        """
        try:
            data = await self._rest.transaction_by_hash(txn_hash)
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise _node_error(e) from e
        except httpx.HTTPError as e:
            raise _node_error(e) from e

        if data.get("type") == "pending_transaction":
            return None
        return TransactionStatus(
            hash=data.get("hash", txn_hash),
            success=bool(data.get("success", False)),
            vm_status=data.get("vm_status", ""),
        )


def _node_error(error: Exception) -> SubmissionError:
    if isinstance(error, ApiError):
        return SubmissionError(str(error), status_code=error.status_code)
    return SubmissionError(f"ledger unreachable: {error}", transient=True)
