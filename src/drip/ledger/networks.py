"""Network information for Drip.

The chain id comes from configuration; explorer links are optional.
"""

from dataclasses import dataclass

from drip.config import NamedChain


@dataclass
class NetworkInfo:
    """Network information derived from runtime config.

    Attributes
    ----------
    server_url : str
        The node REST endpoint.
    chain_id : int
        The chain id transactions are signed for.
    block_explorer_url : str | None
        Optional block explorer URL for transaction links.
    """

    server_url: str
    chain_id: int
    block_explorer_url: str | None = None

    @property
    def name(self) -> str:
        """Well-known network name, or the numeric chain id."""
        try:
            return NamedChain(self.chain_id).name.lower()
        except ValueError:
            return str(self.chain_id)

    def get_txn_url(self, txn_hash: str) -> str | None:
        """Get the block explorer URL for a transaction.

        Parameters
        ----------
        txn_hash : str
            The transaction hash.

        Returns
        -------
        str | None
            The block explorer URL, or None if no explorer configured.
        """
        if self.block_explorer_url:
            return f"{self.block_explorer_url.rstrip('/')}/txn/{txn_hash}?network={self.name}"
        return None

    def get_account_url(self, address: str) -> str | None:
        """Get the block explorer URL for an account.

        Returns
        -------
        str | None
            The block explorer URL, or None if no explorer configured.
        """
        if self.block_explorer_url:
            return f"{self.block_explorer_url.rstrip('/')}/account/{address}?network={self.name}"
        return None
