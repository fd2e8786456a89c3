"""Vendor and product identifier validation."""

import re

from .errors import ValidationError

# Network byte order, twice the octet length, uppercase hex, no prefix or separators
IDENTIFIER_PATTERN = re.compile(r"[0-9A-F]{4}")

_REASON = "should be 4-digit hexadecimal number in all capitals"


def is_identifier(value: object) -> bool:
    """Return True if value is exactly 4 uppercase hex digits."""
    return isinstance(value, str) and IDENTIFIER_PATTERN.fullmatch(value) is not None


def validate_identifier(value: object, field_name: str) -> str:
    """Validate a VID/PID value and return it unchanged.

    Args:
        value: Candidate identifier
        field_name: Field reported in the error (e.g. 'vendorId')

    Returns:
        The identifier string

    Raises:
        ValidationError: If value is not exactly 4 uppercase hex digits
    """
    if not is_identifier(value):
        raise ValidationError(field_name, value, _REASON)
    return value  # type: ignore[return-value]


def validate_vendor_id(value: object) -> str:
    """Validate the deployment vendor id."""
    return validate_identifier(value, "vendorId")


def parse_product_ids(raw: str) -> list[str]:
    """Split and validate a comma-delimited product id list.

    An empty string means no product ids. Every element is validated and a
    single bad element rejects the whole list.

    Args:
        raw: Comma-delimited PIDs, e.g. '8000,8001'

    Returns:
        List of validated PIDs (possibly empty)

    Raises:
        ValidationError: If any element is not a valid identifier
    """
    if raw == "":
        return []

    pids = raw.split(",")
    invalid = [pid for pid in pids if not is_identifier(pid)]
    if invalid:
        raise ValidationError("productIds", raw, f"each {_REASON}, got {invalid}")
    return pids
