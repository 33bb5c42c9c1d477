"""Configuration management for Drip using Pydantic Settings."""

from enum import Enum

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    TEXT = "text"


class NamedChain(int, Enum):
    """Well-known chain ids accepted by name."""

    MAINNET = 1
    TESTNET = 2
    DEVNET = 3
    TESTING = 4


def parse_chain_id(value: str | int) -> int:
    """Parse a chain id given as a number or a well-known network name.

    Parameters
    ----------
    value : str | int
        Numeric chain id or one of MAINNET, TESTNET, DEVNET, TESTING.

    Returns
    -------
    int
        The numeric chain id.

    Raises
    ------
    ValueError
        If the value is unknown, not positive, or out of the u8 range.
    """
    if isinstance(value, str):
        name = value.strip().upper()
        if name in NamedChain.__members__:
            return NamedChain[name].value
        try:
            value = int(name)
        except ValueError:
            raise ValueError(f"Unknown chain id: {value!r}") from None
    if value == 0:
        raise ValueError("Chain id 0 is not allowed")
    if not 0 < value < 256:
        raise ValueError(f"Chain id out of range: {value}")
    return value


class FaucetConfig(BaseSettings):
    """Drip service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # Listener
    address: str = Field(default="127.0.0.1", alias="FAUCET_ADDRESS")
    port: int = Field(default=80, alias="FAUCET_PORT", ge=1, le=65535)

    # Ledger
    server_url: str = Field(
        default="https://fullnode.testnet.aptoslabs.com/v1", alias="FAUCET_SERVER_URL"
    )
    chain_id: int = Field(default=NamedChain.TESTNET.value, alias="FAUCET_CHAIN_ID")
    block_explorer_url: str | None = Field(default=None, alias="FAUCET_BLOCK_EXPLORER_URL")

    # Mint key
    mint_key: SecretStr | None = Field(default=None, alias="FAUCET_MINT_KEY")
    mint_key_file: str | None = Field(
        default="/opt/aptos/etc/mint.key", alias="FAUCET_MINT_KEY_FILE"
    )
    mint_account_address: str | None = Field(default=None, alias="FAUCET_MINT_ACCOUNT_ADDRESS")

    # Minting limits and delegation
    maximum_amount: int | None = Field(default=None, alias="FAUCET_MAXIMUM_AMOUNT", ge=0)
    do_not_delegate: bool = Field(default=False, alias="FAUCET_DO_NOT_DELEGATE")
    delegate_balance: int = Field(
        default=100_000_000_000, alias="FAUCET_DELEGATE_BALANCE", gt=0
    )

    # Transactions
    max_gas_amount: int = Field(default=100_000, alias="FAUCET_MAX_GAS_AMOUNT", gt=0)
    gas_unit_price: int = Field(default=100, alias="FAUCET_GAS_UNIT_PRICE", ge=0)
    txn_expiration_secs: int = Field(default=30, alias="FAUCET_TXN_EXPIRATION_SECS", gt=0)
    wait_attempts: int = Field(default=20, alias="FAUCET_WAIT_ATTEMPTS", gt=0)
    wait_interval_secs: float = Field(default=0.25, alias="FAUCET_WAIT_INTERVAL_SECS", gt=0)
    max_wait_interval_secs: float = Field(
        default=2.0, alias="FAUCET_MAX_WAIT_INTERVAL_SECS", gt=0
    )

    # Locking
    health_lock_timeout: float = Field(default=5.0, alias="FAUCET_HEALTH_LOCK_TIMEOUT", gt=0)
    mint_lock_timeout: float | None = Field(default=None, alias="FAUCET_MINT_LOCK_TIMEOUT", gt=0)

    # Observability
    log_level: str = Field(default="INFO", alias="FAUCET_LOG_LEVEL")
    log_format: LogFormat = Field(default=LogFormat.JSON, alias="FAUCET_LOG_FORMAT")

    @field_validator("chain_id", mode="before")
    @classmethod
    def _parse_chain_id(cls, value: str | int) -> int:
        return parse_chain_id(value)
