"""Blockchain address helpers."""

import re

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_valid_address(address: str) -> bool:
    """
    Check if a string is a 0x-prefixed, 20-byte hexadecimal address.

    Args:
        address: Address string to validate

    Returns:
        True if valid, False otherwise
    """
    if not address:
        return False
    return bool(_ADDRESS_RE.match(address))


def normalize_address(address: str) -> str:
    """
    Normalize an address to lowercase hex.

    Args:
        address: Address string

    Returns:
        Lowercase address

    Raises:
        ValueError: If address is not a valid 0x-prefixed address
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid address: {address}")
    return address.lower()


def addresses_match(left: str, right: str) -> bool:
    """Compare two addresses case-insensitively. Empty values never match."""
    if not left or not right:
        return False
    return left.lower() == right.lower()
