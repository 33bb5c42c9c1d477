"""Resolve a mint request's identity into an account address.

Callers identify the receiving account in one of three ways:
- address: the account address (preferred)
- pub_key: an Ed25519 public key, whose authentication key is the address
- auth_key: an authentication key, equal to the address of never-rotated accounts
"""

import logging

from aptos_sdk import ed25519
from aptos_sdk.account_address import AccountAddress
from nacl.signing import VerifyKey

from drip.core.errors import AddressResolutionError

logger = logging.getLogger(__name__)

ADDRESS_HEX_LENGTH = AccountAddress.LENGTH * 2


def _strip_prefix(value: str) -> tuple[str, bool]:
    if value[:2] in ("0x", "0X"):
        return value[2:], True
    return value, False


def _exact_bytes(value: str) -> bytes:
    hex_value, _ = _strip_prefix(value)
    if len(hex_value) != ADDRESS_HEX_LENGTH:
        raise ValueError(f"expected {ADDRESS_HEX_LENGTH} hex characters, got {len(hex_value)}")
    return bytes.fromhex(hex_value)


def parse_address(value: str) -> AccountAddress:
    """Parse an account address.

    A ``0x``-prefixed literal may be short and is left-padded (``0x1``);
    an unprefixed value must be the full 64 hex characters.

    Raises
    ------
    ValueError
        On malformed hex or a wrong length.
    """
    hex_value, literal = _strip_prefix(value)
    if not literal:
        return AccountAddress(_exact_bytes(hex_value))
    if not hex_value or len(hex_value) > ADDRESS_HEX_LENGTH:
        raise ValueError(f"invalid address literal length: {len(hex_value)}")
    return AccountAddress(bytes.fromhex(hex_value.rjust(ADDRESS_HEX_LENGTH, "0")))


def address_from_public_key(value: str) -> AccountAddress:
    """Derive the address of an Ed25519 public key."""
    public_key = ed25519.PublicKey(VerifyKey(_exact_bytes(value)))
    return AccountAddress.from_key(public_key)


def address_from_auth_key(value: str) -> AccountAddress:
    """Use an authentication key as the address."""
    return AccountAddress(_exact_bytes(value))


def resolve_address(
    address: str | None = None,
    pub_key: str | None = None,
    auth_key: str | None = None,
) -> AccountAddress:
    """Resolve exactly one identity into an account address.

    Parameters
    ----------
    address : str | None
        Hex account address.
    pub_key : str | None
        Hex Ed25519 public key.
    auth_key : str | None
        Hex authentication key.

    Returns
    -------
    AccountAddress
        The receiving account.

    Raises
    ------
    AddressResolutionError
        Unless exactly one identity is given and it parses.
    """
    supplied = [
        (name, value)
        for name, value in (("address", address), ("pub_key", pub_key), ("auth_key", auth_key))
        if value is not None
    ]
    if len(supplied) != 1:
        raise AddressResolutionError()

    name, value = supplied[0]
    try:
        if name == "address":
            return parse_address(value)
        if name == "pub_key":
            return address_from_public_key(value)
        return address_from_auth_key(value)
    except ValueError as e:
        logger.info("Address resolution failed", extra={"field": name, "error": str(e)})
        raise AddressResolutionError() from e
