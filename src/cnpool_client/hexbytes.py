from __future__ import annotations

import binascii
import struct
from typing import Tuple

from .errors import MessageError


def _unhex(s: object, what: str) -> bytes:
    if not isinstance(s, str):
        raise MessageError(f"{what} must be a hex string, got {type(s).__name__}")
    if len(s) % 2:
        raise MessageError(f"{what} has odd hex length {len(s)}")
    try:
        return binascii.unhexlify(s)
    except (binascii.Error, ValueError) as e:
        raise MessageError(f"{what} is not valid hex: {s!r}") from e


def hex64le_to_int(s: object) -> Tuple[int, int]:
    """
    Little-endian hex (not necessarily padded) to an unsigned 64-bit int.
    Returns (value, number of hex chars in the input).
    """
    b = _unhex(s, "target")
    if not b or len(b) > 8:
        raise MessageError(f"target must be 1..8 bytes, got {len(b)}")
    return int.from_bytes(b, "little"), len(b) * 2


def decode_target(s: object) -> int:
    """
    Pool targets come as either 32-bit or 64-bit little-endian hex.
    Inputs of 8 hex chars or less are in compact format: the low 32 bits are
    replicated into the high half, which is what other miners do.
    """
    val, hexlen = hex64le_to_int(s)
    if hexlen <= 8:
        val |= val << 32
    return val


def hex_to_varbyte(s: object) -> bytes:
    return _unhex(s, "blob")


def u32_to_hex_padded(n: int) -> str:
    """Nonce as 4 little-endian bytes, 8 hex chars."""
    return struct.pack("<I", n).hex()


def hex_padded_to_u32(s: object) -> int:
    b = _unhex(s, "nonce")
    if len(b) != 4:
        raise MessageError(f"nonce must be 8 hex chars, got {len(b) * 2}")
    return struct.unpack("<I", b)[0]


def bytes32_to_hex(b: bytes) -> str:
    if len(b) != 32:
        raise ValueError("expected 32-byte hash")
    return bytes(b).hex()


def hex_to_bytes32(s: object) -> bytes:
    b = _unhex(s, "result")
    if len(b) != 32:
        raise MessageError(f"result must be 64 hex chars, got {len(b) * 2}")
    return b
