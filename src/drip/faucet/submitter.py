"""Submits faucet transactions and waits for their execution."""

import asyncio
import logging
import time

from drip.core.account import FaucetAccount
from drip.core.errors import ExecutionFailure, SubmissionError
from drip.ledger.client import LedgerClient, TransactionStatus
from drip.observability.metrics import TRANSACTION_WAIT, TRANSACTIONS

from .transactions import PendingTransaction

logger = logging.getLogger(__name__)


class Submitter:
    """Sends signed transactions to the node and polls for their outcome.

    Parameters
    ----------
    ledger : LedgerClient
        Node client.
    wait_attempts : int
        Polls per transaction before giving up.
    wait_interval_secs : float
        Delay before the second poll; doubled after every poll.
    max_wait_interval_secs : float
        Upper bound for the delay between polls.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        wait_attempts: int = 20,
        wait_interval_secs: float = 0.25,
        max_wait_interval_secs: float = 2.0,
    ):
        self._ledger = ledger
        self._wait_attempts = wait_attempts
        self._wait_interval = wait_interval_secs
        self._max_wait_interval = max_wait_interval_secs

    async def submit(
        self,
        transactions: list[PendingTransaction],
        account: FaucetAccount | None = None,
    ) -> list[str]:
        """Submit transactions in order.

        Parameters
        ----------
        transactions : list[PendingTransaction]
            Signed transactions, in sequence number order.
        account : FaucetAccount | None
            Locked sending account. Every transaction the node accepted, or
            may have accepted before a transport error, is tracked on it.

        Returns
        -------
        list[str]
            Node-assigned hashes, in submission order.

        Raises
        ------
        SubmissionError
            On the first rejected transaction. Later transactions are not sent
            and no sequence number is given back.
        """
        hashes = []
        for pending in transactions:
            try:
                txn_hash = await self._ledger.submit(pending.signed)
            except SubmissionError as e:
                if account is not None and e.transient:
                    account.track(pending.sequence_number, pending.expires_at)
                TRANSACTIONS.labels(kind=pending.kind.value, outcome="rejected").inc()
                logger.error(
                    "Transaction rejected",
                    extra={
                        "kind": pending.kind.value,
                        "sequence_number": pending.sequence_number,
                        "error": e.message,
                    },
                )
                raise
            if account is not None:
                account.track(pending.sequence_number, pending.expires_at)
            TRANSACTIONS.labels(kind=pending.kind.value, outcome="submitted").inc()
            logger.info(
                "Transaction submitted",
                extra={
                    "kind": pending.kind.value,
                    "sequence_number": pending.sequence_number,
                    "txn_hash": txn_hash,
                },
            )
            hashes.append(txn_hash)
        return hashes

    async def wait(
        self, transactions: list[PendingTransaction], hashes: list[str]
    ) -> list[TransactionStatus]:
        """Wait for each submitted transaction in order.

        Raises
        ------
        ExecutionFailure
            If a transaction executed unsuccessfully.
        SubmissionError
            If a transaction's outcome was not observed in time.
        """
        return [
            await self.wait_for(txn_hash, pending.kind.value)
            for pending, txn_hash in zip(transactions, hashes)
        ]

    async def wait_for(self, txn_hash: str, kind: str = "unknown") -> TransactionStatus:
        """Poll one transaction until it leaves the pending state."""
        started = time.monotonic()
        interval = self._wait_interval
        for attempt in range(self._wait_attempts):
            if attempt:
                await asyncio.sleep(interval)
                interval = min(interval * 2, self._max_wait_interval)
            try:
                status = await self._ledger.transaction_status(txn_hash)
            except SubmissionError as e:
                logger.warning(
                    "Transaction status poll failed",
                    extra={"txn_hash": txn_hash, "attempt": attempt, "error": e.message},
                )
                continue
            if status is None:
                continue

            TRANSACTION_WAIT.observe(time.monotonic() - started)
            if not status.success:
                TRANSACTIONS.labels(kind=kind, outcome="failed").inc()
                logger.error(
                    "Transaction execution failed",
                    extra={"txn_hash": txn_hash, "vm_status": status.vm_status},
                )
                raise ExecutionFailure(txn_hash, status.vm_status)
            TRANSACTIONS.labels(kind=kind, outcome="executed").inc()
            return status

        raise SubmissionError(
            f"transaction {txn_hash} not executed after {self._wait_attempts} attempts",
            transient=True,
        )
