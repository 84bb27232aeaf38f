"""Parsing of values that cross the system boundary."""
from __future__ import annotations

import re
from typing import Any

from eth_utils import to_checksum_address

from .errors import InputError

_DECIMAL_RE = re.compile(r"^[0-9]+$")
_ADDRESS_RE = re.compile(r"^0[xX][0-9a-fA-F]{40}$")


def parse_decimal(value: Any, field: str = "amount") -> int:
    """Parse a non-negative decimal integer string.

    Signs, underscores, whitespace inside the number and exponents are
    rejected; surrounding whitespace is tolerated.
    """
    if value is None:
        raise InputError(f"{field} is required")
    if not isinstance(value, str):
        raise InputError(f"{field} must be a decimal string")
    text = value.strip()
    if not text:
        raise InputError(f"{field} is required")
    if not _DECIMAL_RE.match(text):
        raise InputError(f"{field} is not a valid non-negative decimal: {value!r}")
    try:
        return int(text)
    except ValueError as e:
        # int() refuses very long digit strings
        raise InputError(f"{field} is too large: {e}") from e


def parse_positive_decimal(value: Any, field: str = "amount") -> int:
    amount = parse_decimal(value, field)
    if amount <= 0:
        raise InputError(f"{field} must be positive")
    return amount


def parse_address(value: Any, field: str = "address") -> str:
    """Validate a 0x-prefixed 40-hex address and return it checksummed.

    Any letter case is accepted; the checksum is not verified.
    """
    if not isinstance(value, str) or not value.strip():
        raise InputError(f"{field} is required")
    text = value.strip()
    if not _ADDRESS_RE.match(text):
        raise InputError(f"{field} is not a valid address: {value!r}")
    return to_checksum_address("0x" + text[2:].lower())


def parse_uint(value: Any, field: str) -> int:
    """Accept a non-negative int or its decimal string (loan ids, durations)."""
    if isinstance(value, bool):
        raise InputError(f"{field} must be a non-negative integer")
    if isinstance(value, int):
        if value < 0:
            raise InputError(f"{field} must be a non-negative integer")
        return value
    return parse_decimal(value, field)
