"""Bech32 / Bech32m codec (BIP-0173, BIP-0350) without a length cap.

CKB full-format addresses are well over the 90 characters BIP-0173 allows,
so the limit is not enforced here. Both checksum variants are produced and
detected; callers decide which one a given payload format requires.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum

CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
CHARSET_REV = {c: i for i, c in enumerate(CHARSET)}

_GENERATORS = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)


class Bech32Variant(Enum):
    """Checksum constant used by an encoded string."""

    BECH32 = 1
    BECH32M = 0x2BC830A3


class Bech32Error(ValueError):
    """Raised for any malformed bech32 input."""


def _polymod(values: Sequence[int]) -> int:
    chk = 1
    for v in values:
        top = chk >> 25
        chk = ((chk & 0x1FFFFFF) << 5) ^ v
        for i in range(5):
            if (top >> i) & 1:
                chk ^= _GENERATORS[i]
    return chk


def _hrp_expand(hrp: str) -> list[int]:
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def _create_checksum(hrp: str, data: Sequence[int], variant: Bech32Variant) -> list[int]:
    polymod = _polymod(_hrp_expand(hrp) + list(data) + [0] * 6) ^ variant.value
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def bech32_encode(hrp: str, data: Sequence[int], variant: Bech32Variant) -> str:
    """Encode an HRP and 5-bit words into a lowercase bech32 string."""
    if not hrp or any(ord(c) < 33 or ord(c) > 126 for c in hrp):
        raise Bech32Error("invalid HRP characters")
    if any(d < 0 or d > 31 for d in data):
        raise Bech32Error("data values must be 5-bit (0..31)")
    hrp = hrp.lower()
    combined = list(data) + _create_checksum(hrp, data, variant)
    return hrp + "1" + "".join(CHARSET[d] for d in combined)


def bech32_decode(bech: str) -> tuple[str, list[int], Bech32Variant]:
    """Decode a bech32 string into ``(hrp, words, variant)``.

    Raises:
        Bech32Error: On mixed case, bad separator, bad characters or
            checksum mismatch.
    """
    if not bech or len(bech) < 8:
        raise Bech32Error("string too short for bech32")
    if bech.lower() != bech and bech.upper() != bech:
        raise Bech32Error("mixed-case bech32 is invalid")
    bech = bech.lower()

    pos = bech.rfind("1")
    if pos < 1 or pos + 7 > len(bech):
        raise Bech32Error("invalid position of separator '1'")

    hrp = bech[:pos]
    if any(ord(c) < 33 or ord(c) > 126 for c in hrp):
        raise Bech32Error("invalid HRP characters")
    try:
        data = [CHARSET_REV[c] for c in bech[pos + 1 :]]
    except KeyError as exc:
        raise Bech32Error(f"invalid data character {exc.args[0]!r}") from exc

    polymod = _polymod(_hrp_expand(hrp) + data)
    for variant in Bech32Variant:
        if polymod == variant.value:
            return hrp, data[:-6], variant
    raise Bech32Error("checksum mismatch")


def convertbits(
    data: Iterable[int], from_bits: int, to_bits: int, pad: bool = True
) -> list[int]:
    """General power-of-2 base conversion (BIP-0173 ``convertbits``).

    With ``pad=False`` leftover bits must be zero.
    """
    acc = 0
    bits = 0
    ret: list[int] = []
    maxv = (1 << to_bits) - 1
    max_acc = (1 << (from_bits + to_bits - 1)) - 1

    for value in data:
        if value < 0 or (value >> from_bits):
            raise Bech32Error("invalid value for convertbits")
        acc = ((acc << from_bits) | value) & max_acc
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            ret.append((acc >> bits) & maxv)

    if pad:
        if bits:
            ret.append((acc << (to_bits - bits)) & maxv)
    elif bits >= from_bits:
        raise Bech32Error("illegal zero-padding")
    elif (acc << (to_bits - bits)) & maxv:
        raise Bech32Error("non-zero padding")

    return ret


def encode_payload(hrp: str, payload: bytes, variant: Bech32Variant) -> str:
    """Encode raw payload bytes (8->5 bit conversion plus checksum)."""
    return bech32_encode(hrp, convertbits(payload, 8, 5, pad=True), variant)


def decode_payload(address: str) -> tuple[str, bytes, Bech32Variant]:
    """Decode an address into ``(hrp, payload bytes, variant)``."""
    hrp, words, variant = bech32_decode(address)
    return hrp, bytes(convertbits(words, 5, 8, pad=False)), variant
