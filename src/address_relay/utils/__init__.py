"""Utility functions and helpers."""

from .address import addresses_match, is_valid_address, normalize_address
from .logging import setup_logging

__all__ = ["addresses_match", "is_valid_address", "normalize_address", "setup_logging"]
