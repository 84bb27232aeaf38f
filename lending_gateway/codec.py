"""Contract-call codec for the fixed lending pool surface (no I/O).

Every call is a 4-byte selector followed by 32-byte big-endian words.
Results are decoded against a hand-written layout per function; there is
no runtime ABI parsing.
"""
from __future__ import annotations

import binascii
import re
from dataclasses import dataclass, field
from typing import Any

from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from .errors import DecodeError, EncodeError

WORD_SIZE = 32
UINT256_MAX = 2**256 - 1

UINT256 = "uint256"
ADDRESS = "address"
BOOL = "bool"
UINT256_ARRAY = "uint256[]"

_ADDRESS_RE = re.compile(r"^0[xX][0-9a-fA-F]{40}$")


# ---------------------------------------------------------------------------
# Function catalogue
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContractFunction:
    """One supported contract function with its fixed argument/return layout."""

    name: str
    signature: str
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()
    selector: bytes = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "selector", bytes(function_signature_to_4byte_selector(self.signature))
        )


# LendingPool views
GET_POOL_STATE = ContractFunction(
    "getPoolState",
    "getPoolState()",
    outputs=(UINT256, UINT256, UINT256, UINT256, UINT256),
)
GET_USER_POSITION = ContractFunction(
    "getUserPosition",
    "getUserPosition(address)",
    inputs=(ADDRESS,),
    outputs=(UINT256_ARRAY, UINT256, UINT256, UINT256),
)
GET_USER_LOANS = ContractFunction(
    "getUserLoans",
    "getUserLoans(address)",
    inputs=(ADDRESS,),
    outputs=(UINT256_ARRAY,),
)
LOANS = ContractFunction(
    "loans",
    "loans(uint256)",
    inputs=(UINT256,),
    outputs=(ADDRESS, UINT256, UINT256, UINT256, UINT256, UINT256, BOOL),
)
GET_LOAN_HEALTH = ContractFunction(
    "getLoanHealth",
    "getLoanHealth(uint256)",
    inputs=(UINT256,),
    outputs=(UINT256, BOOL),
)
GET_LENDER_POSITION = ContractFunction(
    "getLenderPosition",
    "getLenderPosition(address)",
    inputs=(ADDRESS,),
    outputs=(UINT256, UINT256, UINT256),
)

# Oracle view
GET_PRICE = ContractFunction(
    "getPrice", "getPrice(address)", inputs=(ADDRESS,), outputs=(UINT256,)
)

# Writes
APPROVE = ContractFunction("approve", "approve(address,uint256)", inputs=(ADDRESS, UINT256))
DEPOSIT = ContractFunction("deposit", "deposit(uint256)", inputs=(UINT256,))
WITHDRAW = ContractFunction("withdraw", "withdraw(uint256)", inputs=(UINT256,))
BORROW = ContractFunction("borrow", "borrow(uint256,uint256)", inputs=(UINT256, UINT256))
REPAY = ContractFunction("repay", "repay(uint256)", inputs=(UINT256,))
LIQUIDATE = ContractFunction("liquidate", "liquidate(uint256)", inputs=(UINT256,))
MINT = ContractFunction("mint", "mint(address,uint256)", inputs=(ADDRESS, UINT256))


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def encode_uint256(value: int) -> bytes:
    """Pack a non-negative integer as a right-aligned 32-byte word."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodeError(f"uint256 must be an int, got {type(value).__name__}")
    if value < 0 or value > UINT256_MAX:
        raise EncodeError(f"uint256 out of range: {value}")
    return value.to_bytes(WORD_SIZE, "big")


def encode_address(address: str | bytes) -> bytes:
    """Pack a 20-byte address into the low bytes of a 32-byte word."""
    if isinstance(address, (bytes, bytearray)):
        raw = bytes(address)
        if len(raw) != 20:
            raise EncodeError(f"address must be 20 bytes, got {len(raw)}")
    elif isinstance(address, str) and _ADDRESS_RE.match(address):
        raw = bytes.fromhex(address[2:])
    else:
        raise EncodeError(f"invalid address: {address!r}")
    return b"\x00" * 12 + raw


def encode_call(fn: ContractFunction, *args: Any) -> bytes:
    """Build call data: selector followed by each argument word in order."""
    if len(args) != len(fn.inputs):
        raise EncodeError(
            f"{fn.signature} takes {len(fn.inputs)} argument(s), got {len(args)}"
        )

    parts = [fn.selector]
    for kind, arg in zip(fn.inputs, args):
        if kind == UINT256:
            parts.append(encode_uint256(arg))
        elif kind == ADDRESS:
            parts.append(encode_address(arg))
        else:
            raise EncodeError(f"unsupported argument kind {kind!r} in {fn.signature}")
    return b"".join(parts)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _word(data: bytes, index: int) -> bytes:
    start = index * WORD_SIZE
    end = start + WORD_SIZE
    if end > len(data):
        raise DecodeError(f"need at least {end} bytes for word {index}, got {len(data)}")
    return data[start:end]


def decode_uint256(word: bytes) -> int:
    return int.from_bytes(word, "big")


def decode_address(word: bytes) -> str:
    """Take the low 20 bytes of a word as a checksummed address."""
    if len(word) != WORD_SIZE:
        raise DecodeError(f"address word must be {WORD_SIZE} bytes, got {len(word)}")
    return to_checksum_address("0x" + word[12:].hex())


def decode_bool(word: bytes) -> bool:
    """Read a bool from the low byte; canonical true is exactly 1."""
    if len(word) != WORD_SIZE:
        raise DecodeError(f"bool word must be {WORD_SIZE} bytes, got {len(word)}")
    return word[-1] != 0


def decode_uint256_array(data: bytes, offset: int) -> list[int]:
    """Decode a ``uint256[]`` whose length word starts at ``offset``.

    Layout at the offset: one length word L followed by L element words.
    """
    if offset < 0 or offset + WORD_SIZE > len(data):
        raise DecodeError(f"array offset {offset} outside buffer of {len(data)} bytes")

    length = decode_uint256(data[offset:offset + WORD_SIZE])
    end = offset + WORD_SIZE + length * WORD_SIZE
    if end > len(data):
        raise DecodeError(
            f"array length {length} at offset {offset} exceeds buffer of {len(data)} bytes"
        )

    base = offset + WORD_SIZE
    return [
        decode_uint256(data[base + i * WORD_SIZE:base + (i + 1) * WORD_SIZE])
        for i in range(length)
    ]


def decode_layout(data: bytes, layout: tuple[str, ...]) -> tuple[Any, ...]:
    """Decode a result against a fixed layout of head words.

    Static kinds are read in place; ``uint256[]`` heads hold a relocation
    offset into the tail.
    """
    needed = len(layout) * WORD_SIZE
    if len(data) < needed:
        raise DecodeError(f"need at least {needed} bytes, got {len(data)}")

    values: list[Any] = []
    for index, kind in enumerate(layout):
        word = _word(data, index)
        if kind == UINT256:
            values.append(decode_uint256(word))
        elif kind == ADDRESS:
            values.append(decode_address(word))
        elif kind == BOOL:
            values.append(decode_bool(word))
        elif kind == UINT256_ARRAY:
            values.append(decode_uint256_array(data, decode_uint256(word)))
        else:
            raise DecodeError(f"unsupported result kind {kind!r}")
    return tuple(values)


def decode_output(fn: ContractFunction, data: bytes) -> tuple[Any, ...]:
    """Decode the return data of ``fn``; errors name the function."""
    try:
        return decode_layout(data, fn.outputs)
    except DecodeError as e:
        raise DecodeError(f"decode {fn.name}: {e}") from e


# ---------------------------------------------------------------------------
# Hex helpers
# ---------------------------------------------------------------------------


def to_hex(data: bytes) -> str:
    """Render bytes as ``0x``-prefixed lowercase hex."""
    return "0x" + data.hex()


def from_hex(value: str) -> bytes:
    """Parse ``0x``-prefixed hex returned by the node."""
    if not isinstance(value, str):
        raise DecodeError(f"expected hex string, got {type(value).__name__}")
    body = value[2:] if value[:2] in ("0x", "0X") else value
    try:
        return binascii.unhexlify(body)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"malformed hex result: {e}") from e
