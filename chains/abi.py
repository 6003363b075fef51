"""
chains/abi.py - Contract call encoding and decoding.

Thin wrappers over eth_abi / eth_utils:
- parse_signature("swap(uint256,address[])") -> ("swap", ["uint256", "address[]"])
- encode_call(signature, args) -> 0x-prefixed calldata
- decode_result(output_types, hex_result) -> tuple of decoded values
"""

from typing import Any, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import function_signature_to_4byte_selector

from core.constants import ErrorCode
from core.exceptions import DecodeError
from core.validators import strip_hex_prefix


def parse_signature(signature: str) -> tuple[str, list[str]]:
    """
    Split a canonical function signature into name and argument types.

    Tuple types are kept intact ("(address,uint24)" stays one entry).
    """
    signature = signature.replace(" ", "")
    open_idx = signature.find("(")
    if open_idx <= 0 or not signature.endswith(")"):
        raise ValueError(f"Malformed function signature: {signature}")

    name = signature[:open_idx]
    inner = signature[open_idx + 1:-1]
    if not inner:
        return name, []

    types: list[str] = []
    depth = 0
    current = ""
    for char in inner:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            types.append(current)
            current = ""
            continue
        current += char
    types.append(current)
    return name, types


def function_selector(signature: str) -> str:
    """4-byte selector as 0x-prefixed hex."""
    return "0x" + function_signature_to_4byte_selector(signature.replace(" ", "")).hex()


def encode_call(signature: str, args: Sequence[Any] = ()) -> str:
    """
    Encode calldata for a function call.

    Raises:
        ValueError: if args do not match the signature types
    """
    _, types = parse_signature(signature)
    if len(types) != len(args):
        raise ValueError(
            f"{signature} expects {len(types)} args, got {len(args)}"
        )

    selector = function_selector(signature)
    if not types:
        return selector

    try:
        encoded = encode(types, list(args))
    except EncodingError as e:
        raise ValueError(f"Cannot encode args for {signature}: {e}") from e
    return selector + encoded.hex()


def decode_result(output_types: Sequence[str], hex_result: str | bytes) -> tuple:
    """
    Decode eth_call return data.

    Raises:
        DecodeError: on empty or malformed return data
    """
    if isinstance(hex_result, bytes):
        raw = hex_result
    else:
        body = strip_hex_prefix(hex_result or "")
        try:
            raw = bytes.fromhex(body)
        except ValueError as e:
            raise DecodeError(
                "Return data is not hex",
                details={"raw": str(hex_result)[:100]},
            ) from e

    if not output_types:
        return ()

    if not raw:
        raise DecodeError(
            "Empty return data",
            code=ErrorCode.DECODE_MALFORMED,
            details={"output_types": list(output_types)},
        )

    try:
        return tuple(decode(list(output_types), raw))
    except (DecodingError, OverflowError, ValueError) as e:
        raise DecodeError(
            f"Cannot decode return data as {list(output_types)}: {e}",
            details={"raw": raw.hex()[:100]},
        ) from e
