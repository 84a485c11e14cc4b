"""Unit tests for address utility functions."""

import pytest

from address_relay.utils.address import addresses_match, is_valid_address, normalize_address

ADDRESS = "0x" + "aB" * 20


class TestIsValidAddress:
    """Test is_valid_address function."""

    def test_valid_mixed_case(self):
        """Test a mixed case address is valid."""
        assert is_valid_address(ADDRESS) is True

    def test_valid_lowercase(self):
        """Test a lowercase address is valid."""
        assert is_valid_address(ADDRESS.lower()) is True

    @pytest.mark.parametrize(
        "value",
        ["", None, "0x", "ab" * 20, "0x" + "ab" * 19, "0x" + "ab" * 21, "0x" + "zz" * 20, "0X" + "ab" * 20],
    )
    def test_invalid(self, value):
        """Test malformed addresses are rejected."""
        assert is_valid_address(value) is False


class TestNormalizeAddress:
    """Test normalize_address function."""

    def test_lowercases(self):
        """Test addresses are lowercased."""
        assert normalize_address(ADDRESS) == ADDRESS.lower()

    def test_invalid_raises(self):
        """Test invalid addresses raise ValueError."""
        with pytest.raises(ValueError, match="Invalid address"):
            normalize_address("0x123")


class TestAddressesMatch:
    """Test addresses_match function."""

    def test_case_insensitive(self):
        """Test comparison ignores case."""
        assert addresses_match(ADDRESS, ADDRESS.lower()) is True

    def test_different(self):
        """Test different addresses do not match."""
        assert addresses_match("0xA", "0xB") is False

    @pytest.mark.parametrize("left,right", [("", ""), (None, "0xA"), ("0xA", None)])
    def test_empty_never_matches(self, left, right):
        """Test empty values never match."""
        assert addresses_match(left, right) is False
