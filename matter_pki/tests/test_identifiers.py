"""Tests for identifier validation."""

import re

import pytest
from hypothesis import given
from hypothesis import strategies as st

from matter_pki.lib.errors import ValidationError
from matter_pki.lib.identifiers import (
    is_identifier,
    parse_product_ids,
    validate_identifier,
    validate_vendor_id,
)

REFERENCE = re.compile(r"^[0-9A-F]{4}$")


class TestValidateIdentifier:
    """Tests for validate_identifier."""

    @pytest.mark.parametrize("value", ["0000", "FFFF", "1234", "FFF1", "8000"])
    def test_accepts_uppercase_four_hex_digits(self, value: str) -> None:
        """Should return the value unchanged."""
        assert validate_identifier(value, "vendorId") == value

    @pytest.mark.parametrize("value", ["abcd", "ffF1", "12345", "123", "", "0x12", "12 4", "GHIJ", "１２３４"])
    def test_rejects_everything_else(self, value: str) -> None:
        """Should raise ValidationError naming the field and value, never normalize."""
        with pytest.raises(ValidationError) as exc_info:
            validate_identifier(value, "vendorId")

        assert exc_info.value.field_name == "vendorId"
        assert exc_info.value.value == value
        assert repr(value) in str(exc_info.value)

    def test_rejects_trailing_newline(self) -> None:
        """Should not accept a value that only matches with a trailing newline."""
        assert not is_identifier("1234\n")

    @pytest.mark.parametrize("value", [None, 1234, b"1234"])
    def test_rejects_non_strings(self, value: object) -> None:
        """Should reject values that are not str."""
        assert not is_identifier(value)

    @given(st.text(max_size=8))
    def test_matches_reference_pattern(self, value: str) -> None:
        """Should accept exactly the strings the reference pattern accepts."""
        assert is_identifier(value) == bool(REFERENCE.match(value) and not value.endswith("\n"))

    @given(st.text(alphabet="0123456789ABCDEF", min_size=4, max_size=4))
    def test_accepts_all_valid_identifiers(self, value: str) -> None:
        """Should accept every 4-character uppercase hex string."""
        assert validate_identifier(value, "productIds") == value

    def test_validate_vendor_id_reports_vendor_field(self) -> None:
        """Should report vendorId as the offending field."""
        with pytest.raises(ValidationError, match="vendorId"):
            validate_vendor_id("12g4")


class TestParseProductIds:
    """Tests for parse_product_ids."""

    def test_empty_string_is_empty_list(self) -> None:
        """An empty input is a legal, empty list."""
        assert parse_product_ids("") == []

    def test_splits_in_order(self) -> None:
        """Should split on commas, keeping order."""
        assert parse_product_ids("8000,8001,8002") == ["8000", "8001", "8002"]

    def test_single_bad_element_rejects_batch(self) -> None:
        """One invalid PID invalidates the whole list."""
        with pytest.raises(ValidationError) as exc_info:
            parse_product_ids("8000,80O1,8002")

        assert exc_info.value.field_name == "productIds"
        assert "80O1" in str(exc_info.value)

    @pytest.mark.parametrize("raw", [",", "8000,", "8000, 8001", "8000;8001"])
    def test_rejects_malformed_lists(self, raw: str) -> None:
        """Empty elements and other separators are invalid elements."""
        with pytest.raises(ValidationError):
            parse_product_ids(raw)
