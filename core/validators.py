# PATH: core/validators.py
"""
Address and word validators for poolhunter.

CONTRACTS:
- normalize_address(): 0x-prefixed, 40 hex chars, lower-cased; raises DecodeError
- address_from_word(): right-most 20 bytes of a 32-byte word; left padding dropped
- data_word(): n-th 32-byte word of a hex data blob, or None if too short

The layout is fixed by the EVM log format and is not configurable.
"""

import re
from typing import Optional

from core.constants import ADDRESS_HEX_LENGTH, ErrorCode, WORD_HEX_LENGTH
from core.exceptions import DecodeError

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


def strip_hex_prefix(value: str) -> str:
    """Remove a leading 0x/0X."""
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value


def is_hex(value: str) -> bool:
    """True if value (with or without 0x) is a hex string."""
    if not isinstance(value, str):
        return False
    return bool(_HEX_RE.match(strip_hex_prefix(value)))


def normalize_address(raw: str) -> str:
    """
    Validate an EVM address and return it lower-cased.

    Raises:
        DecodeError: if the value is not a 0x-prefixed 20-byte hex string
    """
    if not isinstance(raw, str):
        raise DecodeError(
            f"Address must be a string, got {type(raw).__name__}",
            details={"value": repr(raw)},
        )

    value = raw.strip()
    body = strip_hex_prefix(value)
    if not value.lower().startswith("0x") or len(body) != ADDRESS_HEX_LENGTH or not is_hex(body):
        raise DecodeError(
            f"Invalid address: {value[:50]}",
            details={"value": value[:50]},
        )
    return "0x" + body.lower()


def address_from_word(word: str) -> str:
    """
    Decode an address from a 32-byte topic/data word.

    Raises:
        DecodeError: if the word is not exactly 32 bytes of hex
    """
    if not isinstance(word, str) or not is_hex(word):
        raise DecodeError(
            "Topic word is not hex",
            details={"word": repr(word)[:80]},
        )

    body = strip_hex_prefix(word)
    if len(body) != WORD_HEX_LENGTH:
        raise DecodeError(
            f"Topic word must be {WORD_HEX_LENGTH} hex chars, got {len(body)}",
            code=ErrorCode.DECODE_MALFORMED,
            details={"word": word[:80]},
        )
    return "0x" + body[-ADDRESS_HEX_LENGTH:].lower()


def data_word(data: str, index: int) -> Optional[str]:
    """
    Return the index-th 32-byte word of a log data blob.

    Returns None when the blob is too short or not hex.
    """
    if not data or not is_hex(data):
        return None

    body = strip_hex_prefix(data)
    start = index * WORD_HEX_LENGTH
    end = start + WORD_HEX_LENGTH
    if len(body) < end:
        return None
    return "0x" + body[start:end]


def parse_quantity(value: int | str) -> int:
    """Parse a JSON-RPC quantity (hex string or int)."""
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value[:2] in ("0x", "0X") else int(value)
    raise DecodeError(
        f"Cannot parse quantity of type {type(value).__name__}",
        details={"value": repr(value)[:80]},
    )
