"""Mint Service for Drip.

Coordinates one mint request end to end:
- Address resolution
- Faucet account lock
- Ledger lookups and sequence reconciliation
- Transaction building and submission
"""

import asyncio
import logging
from dataclasses import dataclass, field

from aptos_sdk.account_address import AccountAddress
from aptos_sdk.transactions import SignedTransaction

from drip.core.account import FaucetAccount
from drip.core.errors import UnknownFaucetAccountError
from drip.ledger.client import LedgerClient
from drip.observability.metrics import COINS_MINTED

from .resolver import resolve_address
from .submitter import Submitter
from .transactions import FaucetPayload, TransactionBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MintRequest:
    """A request to fund one account.

    Exactly one of ``address``, ``pub_key`` and ``auth_key`` identifies the
    receiver.
    """

    amount: int
    address: str | None = None
    pub_key: str | None = None
    auth_key: str | None = None
    return_txns: bool = False


@dataclass
class MintResult:
    """Result of a mint request, in submission order."""

    hashes: list[str] = field(default_factory=list)
    transactions: list[SignedTransaction] | None = None

    @property
    def confirmed(self) -> bool:
        """True when every transaction was waited on."""
        return self.transactions is None


class MintService:
    """Mints coins from one faucet account.

    Parameters
    ----------
    account : FaucetAccount
        The account that signs every transaction of this service.
    ledger : LedgerClient
        Node client.
    builder : TransactionBuilder
        Builder carrying this instance's chain settings and mint cap.
    submitter : Submitter
        Submits and waits for transactions.
    lock_timeout : float | None
        Seconds a mint waits for the account lock. None waits indefinitely.
    """

    def __init__(
        self,
        account: FaucetAccount,
        ledger: LedgerClient,
        builder: TransactionBuilder,
        submitter: Submitter,
        lock_timeout: float | None = None,
    ):
        self._account = account
        self._ledger = ledger
        self._builder = builder
        self._submitter = submitter
        self._lock_timeout = lock_timeout

    @property
    def account(self) -> FaucetAccount:
        return self._account

    @property
    def ledger(self) -> LedgerClient:
        return self._ledger

    @property
    def builder(self) -> TransactionBuilder:
        return self._builder

    @property
    def submitter(self) -> Submitter:
        return self._submitter

    @property
    def lock_timeout(self) -> float | None:
        return self._lock_timeout

    @property
    def maximum_amount(self) -> int | None:
        """Mint cap of this instance."""
        return self._builder.maximum_amount

    async def mint(self, request: MintRequest) -> MintResult:
        """Create (if needed) and fund the requested account.

        Parameters
        ----------
        request : MintRequest
            Receiver identity, amount and response mode.

        Returns
        -------
        MintResult
            Hashes once executed, or the signed transactions right after
            submission when ``request.return_txns`` is set.

        Raises
        ------
        AddressResolutionError
            If the receiver identity is missing, ambiguous or malformed.
        UnknownFaucetAccountError
            If the faucet account does not exist on the ledger.
        SubmissionError
            If the node rejects a transaction or execution is not observed.
        ExecutionFailure
            If a transaction executes unsuccessfully.
        """
        receiver = resolve_address(request.address, request.pub_key, request.auth_key)

        async with self._account.locked(self._lock_timeout) as account:
            receiver_exists = await self._prepare(account, receiver)
            transactions = self._builder.mint_transactions(
                account, receiver, request.amount, receiver_exists
            )
            hashes = await self._submitter.submit(transactions, account)
            if request.return_txns:
                result = MintResult(
                    hashes=hashes, transactions=[pending.signed for pending in transactions]
                )
            else:
                await self._submitter.wait(transactions, hashes)
                result = MintResult(hashes=hashes)

        minted = self._builder.clamp(request.amount)
        COINS_MINTED.inc(minted)
        logger.info(
            "Mint completed",
            extra={
                "receiver": str(receiver),
                "amount": minted,
                "account_created": not receiver_exists,
                "confirmed": result.confirmed,
                "txn_hashes": hashes,
            },
        )
        return result

    async def execute(self, payloads: list[FaucetPayload], wait: bool = True) -> list[str]:
        """Sign and submit arbitrary faucet payloads from this account.

        Parameters
        ----------
        payloads : list[FaucetPayload]
            Payloads to send, in order.
        wait : bool
            Whether to wait for execution before releasing the lock.

        Returns
        -------
        list[str]
            Transaction hashes in submission order.
        """
        async with self._account.locked(self._lock_timeout) as account:
            await self._prepare(account, None)
            transactions = [self._builder.build(account, payload) for payload in payloads]
            hashes = await self._submitter.submit(transactions, account)
            if wait:
                await self._submitter.wait(transactions, hashes)

        logger.info(
            "Faucet transactions executed",
            extra={
                "account": str(self._account.address),
                "kinds": [payload.kind.value for payload in payloads],
                "txn_hashes": hashes,
            },
        )
        return hashes

    async def sequence_number(self, timeout: float | None = None) -> int:
        """Read the local sequence number under the account lock."""
        async with self._account.locked(timeout) as account:
            return account.sequence_number

    async def _prepare(self, account: FaucetAccount, receiver: AccountAddress | None) -> bool:
        """Check the faucet account and reconcile its sequence number.

        Returns
        -------
        bool
            Whether ``receiver`` exists on the ledger.
        """
        lookups = [self._ledger.get_account(account.address)]
        if receiver is not None:
            lookups.append(self._ledger.get_account(receiver))
        faucet_info, *receiver_info = await asyncio.gather(*lookups)

        if faucet_info is None:
            logger.error("Faucet account not found", extra={"account": str(account.address)})
            raise UnknownFaucetAccountError(account.address)

        account.reconcile(faucet_info.sequence_number)
        return bool(receiver_info) and receiver_info[0] is not None

