"""Signing key providers for the faucet account."""

from abc import ABC, abstractmethod
from pathlib import Path

from aptos_sdk import ed25519
from aptos_sdk.account import Account
from aptos_sdk.account_address import AccountAddress
from nacl.signing import SigningKey
from pydantic import SecretStr


class SigningKeyProvider(ABC):
    """Abstract provider of the key the faucet signs with."""

    @abstractmethod
    def get_account(self) -> Account:
        """Get the signing account.

        Returns
        -------
        Account
            The account instance for transaction signing.
        """
        ...

    @property
    def address(self) -> AccountAddress:
        """Get the address derived from the signing key.

        Returns
        -------
        AccountAddress
            The Ed25519 authentication key of the signing key.
        """
        return self.get_account().address()


def _account_from_hex(value: str) -> Account:
    value = value.strip().removeprefix("0x")
    private_key = ed25519.PrivateKey(SigningKey(bytes.fromhex(value)))
    return Account(AccountAddress.from_key(private_key.public_key()), private_key)


class EnvironmentKey(SigningKeyProvider):
    """Load the mint key from an environment variable or a file.

    Parameters
    ----------
    private_key : SecretStr, optional
        Hex-encoded Ed25519 private key (from env var).
    private_key_file : str, optional
        Path to a file containing the hex-encoded private key.

    Raises
    ------
    ValueError
        If neither private_key nor private_key_file is provided.
    FileNotFoundError
        If private_key_file does not exist.
    """

    def __init__(
        self,
        private_key: SecretStr | None = None,
        private_key_file: str | None = None,
    ):
        if private_key is not None:
            self._account = _account_from_hex(private_key.get_secret_value())
        elif private_key_file is not None:
            key_path = Path(private_key_file).expanduser()
            if not key_path.exists():
                raise FileNotFoundError(f"Mint key file not found: {private_key_file}")
            self._account = _account_from_hex(key_path.read_text())
        else:
            raise ValueError("Either private_key or private_key_file must be provided")

    def get_account(self) -> Account:
        return self._account


class EphemeralKey(SigningKeyProvider):
    """A freshly generated key that lives only as long as the process."""

    def __init__(self):
        self._account = Account.generate()

    def get_account(self) -> Account:
        return self._account
