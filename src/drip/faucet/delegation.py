"""Delegation of public minting to an ephemeral, capped faucet account.

The root key never serves public traffic. At startup it creates and funds a
freshly generated account, hands it the mint capability, and a second
MintService bound to that account is exposed instead. Whatever the public
listener can lose is bounded by what the delegate holds.
"""

import logging

from drip.core.account import FaucetAccount
from drip.core.keys import EphemeralKey, SigningKeyProvider

from .service import MintRequest, MintService
from .transactions import ClaimMintCapability, DelegateMintCapability

logger = logging.getLogger(__name__)

DEFAULT_DELEGATE_BALANCE = 100_000_000_000


class DelegationCoordinator:
    """Bootstraps the delegate faucet from the root faucet.

    Parameters
    ----------
    root : MintService
        Service bound to the root account. Should carry no mint cap, so the
        delegate can be funded with ``delegate_balance``.
    maximum_amount : int | None
        Mint cap of the delegate service.
    delegate_balance : int
        Octas minted to the delegate.
    """

    def __init__(
        self,
        root: MintService,
        maximum_amount: int | None = None,
        delegate_balance: int = DEFAULT_DELEGATE_BALANCE,
    ):
        self._root = root
        self._maximum_amount = maximum_amount
        self._delegate_balance = delegate_balance

    async def delegate(self, key: SigningKeyProvider | None = None) -> MintService:
        """Create, fund and empower the delegate, and return its service.

        Parameters
        ----------
        key : SigningKeyProvider | None
            Delegate key. A fresh ephemeral key when omitted.

        Returns
        -------
        MintService
            Independent service for the delegate, with its own lock and cap.
        """
        key = key or EphemeralKey()
        delegate_address = key.address
        logger.info(
            "Delegating mint account",
            extra={
                "root": str(self._root.account.address),
                "delegate": str(delegate_address),
                "balance": self._delegate_balance,
            },
        )

        await self._root.mint(
            MintRequest(amount=self._delegate_balance, address=str(delegate_address))
        )
        await self._root.execute([DelegateMintCapability(delegate_address)])

        delegate_account = FaucetAccount(key.get_account(), delegate_address)
        delegate = MintService(
            account=delegate_account,
            ledger=self._root.ledger,
            builder=self._root.builder.with_maximum_amount(self._maximum_amount),
            submitter=self._root.submitter,
            lock_timeout=self._root.lock_timeout,
        )
        await delegate.execute([ClaimMintCapability()])

        logger.info(
            "Mint account delegated",
            extra={"delegate": str(delegate_address), "maximum_amount": self._maximum_amount},
        )
        return delegate
