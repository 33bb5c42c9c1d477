"""Pytest configuration and fixtures for Drip tests."""

import hashlib
import os
from dataclasses import dataclass

import pytest
from aptos_sdk.account import Account
from aptos_sdk.account_address import AccountAddress
from aptos_sdk.transactions import SignedTransaction

from drip.core.account import FaucetAccount
from drip.core.errors import SubmissionError
from drip.faucet.service import MintService
from drip.faucet.submitter import Submitter
from drip.faucet.transactions import (
    ClaimMintCapability,
    CreateAccount,
    DelegateMintCapability,
    Mint,
    TransactionBuilder,
    decode_payload,
)
from drip.ledger.client import AccountInfo, TransactionStatus

TEST_CHAIN_ID = 4

# Ed25519 public key and the address derived from it.
PUB_KEY = "459c77a38803bd53f3adee52703810e3a74fd7c46952c497e75afb0a7932586d"
PUB_KEY_ADDRESS = "9ff98e82355eb13098f3b1157ac018a725c62c0e0820f422000814cdba407835"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clear Drip-related environment variables before each test."""
    env_prefixes = ("FAUCET_",)
    for key in list(os.environ.keys()):
        if key.startswith(env_prefixes):
            monkeypatch.delenv(key, raising=False)


@dataclass
class FakeAccountState:
    """Ledger-side state of an account."""

    balance: int = 0
    sequence_number: int = 0


class FakeLedger:
    """In-memory ledger with the LedgerClient interface.

    Decodes the submitted BCS transactions and applies their faucet payloads,
    so tests observe the same effects a node would produce. Like a node, it
    only accepts the next sequence number of each sender. With
    ``hold_execution`` set, accepted transactions wait in the mempool until
    ``execute_pending`` runs them.
    """

    def __init__(self, chain_id: int = TEST_CHAIN_ID):
        self.server_url = "http://ledger.test/v1"
        self.node_chain_id = chain_id
        self.accounts: dict[str, FakeAccountState] = {}
        self.statuses: dict[str, TransactionStatus] = {}
        self.submitted: list[SignedTransaction] = []
        self.capabilities: dict[str, set[str]] = {"offered": set(), "claimed": set()}
        self.reject_with: str | None = None
        self.hold_execution = False
        self.mempool: list[tuple[str, SignedTransaction]] = []
        self.fail_with: str | None = None
        self.pending_polls = 0
        self.closed = False

    def add_account(
        self, address: AccountAddress, balance: int = 0, sequence_number: int = 0
    ) -> FakeAccountState:
        state = FakeAccountState(balance=balance, sequence_number=sequence_number)
        self.accounts[str(address)] = state
        return state

    def balance(self, address: AccountAddress) -> int:
        return self.accounts[str(address)].balance

    async def close(self) -> None:
        self.closed = True

    async def chain_id(self) -> int:
        return self.node_chain_id

    async def get_account(self, address: AccountAddress) -> AccountInfo | None:
        state = self.accounts.get(str(address))
        if state is None:
            return None
        return AccountInfo(
            address=address,
            sequence_number=state.sequence_number,
            authentication_key=str(address),
        )

    async def account_balance(self, address: AccountAddress) -> int:
        state = self.accounts.get(str(address))
        if state is None:
            raise SubmissionError("Account not found", status_code=404)
        return state.balance

    async def submit(self, signed: SignedTransaction) -> str:
        if self.reject_with:
            raise SubmissionError(self.reject_with, status_code=400)

        raw = signed.transaction
        sender = self.accounts.get(str(raw.sender))
        if sender is None:
            raise SubmissionError("SENDING_ACCOUNT_DOES_NOT_EXIST", status_code=400)
        queued = [
            txn.transaction.sequence_number
            for _, txn in self.mempool
            if str(txn.transaction.sender) == str(raw.sender)
        ]
        if raw.sequence_number < sender.sequence_number:
            raise SubmissionError("SEQUENCE_NUMBER_TOO_OLD", status_code=400)
        if raw.sequence_number in queued:
            raise SubmissionError("SEQUENCE_NUMBER_ALREADY_IN_MEMPOOL", status_code=400)
        if raw.sequence_number > sender.sequence_number + len(queued):
            raise SubmissionError("SEQUENCE_NUMBER_TOO_NEW", status_code=400)

        txn_hash = "0x" + hashlib.sha3_256(signed.bytes()).hexdigest()
        self.submitted.append(signed)
        if self.hold_execution:
            self.mempool.append((txn_hash, signed))
        else:
            self._execute(txn_hash, signed)
        return txn_hash

    def execute_pending(self) -> None:
        """Execute every held transaction in submission order."""
        mempool, self.mempool = self.mempool, []
        for txn_hash, signed in mempool:
            self._execute(txn_hash, signed)

    def _execute(self, txn_hash: str, signed: SignedTransaction) -> None:
        raw = signed.transaction
        self.accounts[str(raw.sender)].sequence_number = raw.sequence_number + 1
        vm_status = self.fail_with or self._apply(str(raw.sender), decode_payload(raw.payload))
        self.statuses[txn_hash] = TransactionStatus(
            hash=txn_hash,
            success=vm_status == "Executed successfully",
            vm_status=vm_status,
        )

    async def transaction_status(self, txn_hash: str) -> TransactionStatus | None:
        if self.pending_polls:
            self.pending_polls -= 1
            return None
        return self.statuses.get(txn_hash)

    def _apply(self, sender: str, payload) -> str:
        if isinstance(payload, CreateAccount):
            if str(payload.address) in self.accounts:
                return "EACCOUNT_ALREADY_EXISTS"
            self.add_account(payload.address)
        elif isinstance(payload, Mint):
            receiver = self.accounts.get(str(payload.receiver))
            if receiver is None:
                return "EACCOUNT_DOES_NOT_EXIST"
            receiver.balance += payload.amount
        elif isinstance(payload, DelegateMintCapability):
            self.capabilities["offered"].add(str(payload.to))
        elif isinstance(payload, ClaimMintCapability):
            if sender not in self.capabilities["offered"]:
                return "EDELEGATION_NOT_FOUND"
            self.capabilities["claimed"].add(sender)
        return "Executed successfully"


@pytest.fixture
def ledger():
    """Create an empty fake ledger."""
    return FakeLedger()


@pytest.fixture
def faucet_account(ledger):
    """Create a faucet account that exists on the fake ledger."""
    account = FaucetAccount(Account.generate())
    ledger.add_account(account.address, balance=10**18)
    return account


@pytest.fixture
def builder():
    """Create an uncapped transaction builder."""
    return TransactionBuilder(chain_id=TEST_CHAIN_ID)


@pytest.fixture
def submitter(ledger):
    """Create a submitter that polls without real delays."""
    return Submitter(
        ledger,
        wait_attempts=3,
        wait_interval_secs=0.001,
        max_wait_interval_secs=0.002,
    )


@pytest.fixture
def service(faucet_account, ledger, builder, submitter):
    """Create a mint service bound to the fake ledger."""
    return MintService(
        account=faucet_account,
        ledger=ledger,
        builder=builder,
        submitter=submitter,
    )
