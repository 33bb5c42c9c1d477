"""Faucet transaction payloads and the builder that signs them.

The faucet signs a closed set of entry functions:
- create_account: 0x1::aptos_account::create_account(auth_key)
- mint: 0x1::aptos_coin::mint(dst_addr, amount)
- delegate_mint_capability: 0x1::aptos_coin::delegate_mint_capability(to)
- claim_mint_capability: 0x1::aptos_coin::claim_mint_capability()
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from aptos_sdk.account_address import AccountAddress
from aptos_sdk.bcs import Deserializer, Serializer
from aptos_sdk.transactions import (
    EntryFunction,
    RawTransaction,
    SignedTransaction,
    TransactionArgument,
    TransactionPayload,
)

from drip.core.account import FaucetAccount
from drip.core.errors import UnrecognizedPayloadError

logger = logging.getLogger(__name__)

CORE_ADDRESS = AccountAddress(bytes(AccountAddress.LENGTH - 1) + b"\x01")


class PayloadKind(str, Enum):
    """Kinds of transaction the faucet signs."""

    CREATE_ACCOUNT = "create_account"
    MINT = "mint"
    DELEGATE_MINT_CAPABILITY = "delegate_mint_capability"
    CLAIM_MINT_CAPABILITY = "claim_mint_capability"


@dataclass(frozen=True)
class CreateAccount:
    """Create ``address`` with itself as authentication key."""

    address: AccountAddress
    kind: ClassVar[PayloadKind] = PayloadKind.CREATE_ACCOUNT

    def entry_function(self) -> EntryFunction:
        return EntryFunction.natural(
            "0x1::aptos_account",
            "create_account",
            [],
            [TransactionArgument(self.address, Serializer.struct)],
        )


@dataclass(frozen=True)
class Mint:
    """Mint ``amount`` octas into ``receiver``."""

    receiver: AccountAddress
    amount: int
    kind: ClassVar[PayloadKind] = PayloadKind.MINT

    def entry_function(self) -> EntryFunction:
        return EntryFunction.natural(
            "0x1::aptos_coin",
            "mint",
            [],
            [
                TransactionArgument(self.receiver, Serializer.struct),
                TransactionArgument(self.amount, Serializer.u64),
            ],
        )


@dataclass(frozen=True)
class DelegateMintCapability:
    """Offer the sender's mint capability to ``to``."""

    to: AccountAddress
    kind: ClassVar[PayloadKind] = PayloadKind.DELEGATE_MINT_CAPABILITY

    def entry_function(self) -> EntryFunction:
        return EntryFunction.natural(
            "0x1::aptos_coin",
            "delegate_mint_capability",
            [],
            [TransactionArgument(self.to, Serializer.struct)],
        )


@dataclass(frozen=True)
class ClaimMintCapability:
    """Accept a mint capability offered to the sender."""

    kind: ClassVar[PayloadKind] = PayloadKind.CLAIM_MINT_CAPABILITY

    def entry_function(self) -> EntryFunction:
        return EntryFunction.natural("0x1::aptos_coin", "claim_mint_capability", [], [])


FaucetPayload = CreateAccount | Mint | DelegateMintCapability | ClaimMintCapability


def decode_payload(payload: TransactionPayload) -> FaucetPayload:
    """Map a transaction payload back onto the faucet payload it came from.

    Raises
    ------
    UnrecognizedPayloadError
        If the payload is not one of the faucet's entry functions.
    """
    function = payload.value
    if not isinstance(function, EntryFunction):
        raise UnrecognizedPayloadError(f"not an entry function payload: {type(function).__name__}")
    if function.module.address != CORE_ADDRESS:
        raise UnrecognizedPayloadError(f"unexpected module address: {function.module.address}")

    target = (function.module.name, function.function)
    args = function.args
    try:
        if target == ("aptos_account", "create_account"):
            return CreateAccount(Deserializer(args[0]).struct(AccountAddress))
        if target == ("aptos_coin", "mint"):
            return Mint(
                receiver=Deserializer(args[0]).struct(AccountAddress),
                amount=Deserializer(args[1]).u64(),
            )
        if target == ("aptos_coin", "delegate_mint_capability"):
            return DelegateMintCapability(Deserializer(args[0]).struct(AccountAddress))
        if target == ("aptos_coin", "claim_mint_capability"):
            return ClaimMintCapability()
    except IndexError:
        raise UnrecognizedPayloadError(f"missing arguments for {target[0]}::{target[1]}") from None
    raise UnrecognizedPayloadError(f"unexpected entry function: {target[0]}::{target[1]}")


def encode_transactions(transactions: list[SignedTransaction]) -> str:
    """Hex of the BCS-encoded transaction list."""
    serializer = Serializer()
    serializer.sequence(transactions, Serializer.struct)
    return serializer.output().hex()


def decode_transactions(encoded: str) -> list[SignedTransaction]:
    """Inverse of :func:`encode_transactions`."""
    deserializer = Deserializer(bytes.fromhex(encoded.strip()))
    return deserializer.sequence(SignedTransaction.deserialize)


@dataclass
class PendingTransaction:
    """A signed transaction, the sequence number it consumed and its expiry."""

    kind: PayloadKind
    sequence_number: int
    signed: SignedTransaction
    expires_at: int


class TransactionBuilder:
    """Builds and signs faucet transactions.

    Parameters
    ----------
    chain_id : int
        Chain id transactions are signed for.
    max_gas_amount : int
        Gas limit per transaction.
    gas_unit_price : int
        Gas price in octas.
    expiration_secs : int
        Seconds from build time until a transaction expires.
    maximum_amount : int | None
        Mint cap for this faucet instance. None disables the cap.
    """

    def __init__(
        self,
        chain_id: int,
        max_gas_amount: int = 100_000,
        gas_unit_price: int = 100,
        expiration_secs: int = 30,
        maximum_amount: int | None = None,
    ):
        self._chain_id = chain_id
        self._max_gas_amount = max_gas_amount
        self._gas_unit_price = gas_unit_price
        self._expiration_secs = expiration_secs
        self._maximum_amount = maximum_amount

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def maximum_amount(self) -> int | None:
        """Mint cap for this faucet instance."""
        return self._maximum_amount

    def with_maximum_amount(self, maximum_amount: int | None) -> "TransactionBuilder":
        """Copy of this builder with a different mint cap."""
        return TransactionBuilder(
            chain_id=self._chain_id,
            max_gas_amount=self._max_gas_amount,
            gas_unit_price=self._gas_unit_price,
            expiration_secs=self._expiration_secs,
            maximum_amount=maximum_amount,
        )

    def clamp(self, amount: int) -> int:
        """Reduce ``amount`` to the mint cap, silently."""
        if self._maximum_amount is not None and amount > self._maximum_amount:
            return self._maximum_amount
        return amount

    def build(self, account: FaucetAccount, payload: FaucetPayload) -> PendingTransaction:
        """Reserve a sequence number and sign ``payload`` with it.

        The account must be locked by the caller.
        """
        sequence_number = account.reserve_sequence_number()
        expires_at = int(time.time()) + self._expiration_secs
        raw = RawTransaction(
            account.address,
            sequence_number,
            TransactionPayload(payload.entry_function()),
            self._max_gas_amount,
            self._gas_unit_price,
            expires_at,
            self._chain_id,
        )
        return PendingTransaction(
            kind=payload.kind,
            sequence_number=sequence_number,
            signed=account.sign(raw),
            expires_at=expires_at,
        )

    def mint_transactions(
        self,
        account: FaucetAccount,
        receiver: AccountAddress,
        amount: int,
        receiver_exists: bool,
    ) -> list[PendingTransaction]:
        """Build the transactions that leave ``receiver`` funded.

        Parameters
        ----------
        account : FaucetAccount
            The locked faucet account.
        receiver : AccountAddress
            Account to fund.
        amount : int
            Requested amount, clamped to the mint cap.
        receiver_exists : bool
            Whether the receiver is already on chain.

        Returns
        -------
        list[PendingTransaction]
            Create-account (when needed) followed by mint.
        """
        payloads: list[FaucetPayload] = []
        if not receiver_exists:
            payloads.append(CreateAccount(receiver))
        payloads.append(Mint(receiver, self.clamp(amount)))
        return [self.build(account, payload) for payload in payloads]
