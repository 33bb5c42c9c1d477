"""Faucet signing account and its sequence counter.

The account is the only shared mutable state in the service. Sequence numbers
are reserved, and transactions signed and submitted, while the account lock is
held, which keeps the numbers gap-free and unique under concurrent requests.

The account also remembers which of its numbers the node accepted and may
still execute. Reconciliation never hands those numbers out again, even when
the ledger has not caught up with them yet.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from aptos_sdk.account import Account
from aptos_sdk.account_address import AccountAddress
from aptos_sdk.transactions import RawTransaction, SignedTransaction

from drip.observability.metrics import SEQUENCE_NUMBER

from .errors import LockTimeoutError

logger = logging.getLogger(__name__)

# Slack for clock skew between this host and the ledger when deciding that an
# accepted transaction has expired.
EXPIRATION_GRACE_SECS = 30


class FaucetAccount:
    """A signing key with a locally tracked sequence number.

    Parameters
    ----------
    signer : Account
        Account holding the Ed25519 private key.
    address : AccountAddress | None
        Address to send from. Defaults to the signer's derived address;
        differs only for accounts whose authentication key was rotated.
    sequence_number : int
        Next sequence number to use.
    """

    def __init__(
        self,
        signer: Account,
        address: AccountAddress | None = None,
        sequence_number: int = 0,
    ):
        self._signer = signer
        self._address = address or signer.address()
        self._sequence_number = sequence_number
        self._in_flight: dict[int, int] = {}
        self._lock = asyncio.Lock()
        SEQUENCE_NUMBER.labels(account=str(self._address)).set(sequence_number)

    @property
    def address(self) -> AccountAddress:
        """Address transactions are sent from."""
        return self._address

    @property
    def sequence_number(self) -> int:
        """Next sequence number that will be reserved."""
        return self._sequence_number

    @asynccontextmanager
    async def locked(self, timeout: float | None = None) -> AsyncIterator["FaucetAccount"]:
        """Hold the account lock for the duration of the block.

        Parameters
        ----------
        timeout : float | None
            Seconds to wait for the lock. None waits indefinitely.

        Raises
        ------
        LockTimeoutError
            If the lock was not acquired within ``timeout``.
        """
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Faucet account lock timed out",
                extra={"account": str(self._address), "timeout": timeout},
            )
            raise LockTimeoutError(
                f"timed out waiting for faucet account {self._address}"
            ) from None
        try:
            yield self
        finally:
            self._lock.release()

    def reserve_sequence_number(self) -> int:
        """Consume the next sequence number.

        Returns
        -------
        int
            The reserved number. It is never handed out again.
        """
        self._require_lock()
        reserved = self._sequence_number
        self._sequence_number += 1
        SEQUENCE_NUMBER.labels(account=str(self._address)).set(self._sequence_number)
        return reserved

    def set_sequence_number(self, sequence_number: int) -> None:
        """Overwrite the local counter with a value observed on the ledger."""
        self._require_lock()
        logger.info(
            "Faucet sequence number reset",
            extra={
                "account": str(self._address),
                "old": self._sequence_number,
                "new": sequence_number,
            },
        )
        self._sequence_number = sequence_number
        SEQUENCE_NUMBER.labels(account=str(self._address)).set(sequence_number)

    @property
    def in_flight(self) -> list[int]:
        """Sequence numbers of accepted transactions not yet seen on the ledger."""
        return sorted(self._in_flight)

    def track(self, sequence_number: int, expires_at: int) -> None:
        """Remember a number whose transaction the node may still execute.

        Parameters
        ----------
        sequence_number : int
            Number the transaction consumed.
        expires_at : int
            Unix time after which the ledger drops the transaction.
        """
        self._require_lock()
        self._in_flight[sequence_number] = expires_at

    def reconcile(self, onchain: int, now: float | None = None) -> None:
        """Bring the local counter in line with the ledger's sequence number.

        A higher ledger value is adopted. A local counter ahead of the ledger
        is moved back only past numbers that can no longer execute, so no
        accepted, unexpired transaction has its number handed out twice.

        Parameters
        ----------
        onchain : int
            Sequence number the ledger reports for this account.
        now : float | None
            Current Unix time. Defaults to the wall clock.
        """
        self._require_lock()
        now = time.time() if now is None else now
        self._in_flight = {
            number: expires_at
            for number, expires_at in self._in_flight.items()
            if number >= onchain and expires_at + EXPIRATION_GRACE_SECS > now
        }
        floor = max([onchain, *(number + 1 for number in self._in_flight)])
        if floor == self._sequence_number:
            return
        if floor < self._sequence_number:
            logger.warning(
                "Reclaiming sequence numbers that never reached the ledger",
                extra={
                    "account": str(self._address),
                    "local": self._sequence_number,
                    "onchain": onchain,
                    "in_flight": len(self._in_flight),
                },
            )
        self.set_sequence_number(floor)

    def sign(self, raw_transaction: RawTransaction) -> SignedTransaction:
        """Sign a raw transaction with the account key."""
        return SignedTransaction(raw_transaction, self._signer.sign_transaction(raw_transaction))

    def _require_lock(self) -> None:
        if not self._lock.locked():
            raise RuntimeError("faucet account must be locked to change its sequence number")
