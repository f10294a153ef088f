"""CKB hash functions.

CKB uses blake2b with a 32-byte digest and the personalization
``ckb-default-hash`` for transaction ids, script hashes and lock args.
"""

from __future__ import annotations

import hashlib

CKB_HASH_PERSONALIZATION = b"ckb-default-hash"
HASH_LENGTH = 32
HASH160_LENGTH = 20


def blake2b_256(data: bytes) -> bytes:
    """Return the 32-byte CKB blake2b digest of ``data``."""
    return hashlib.blake2b(
        data, digest_size=HASH_LENGTH, person=CKB_HASH_PERSONALIZATION
    ).digest()


def hash160(data: bytes) -> bytes:
    """Return the first 20 bytes of the CKB blake2b digest."""
    return blake2b_256(data)[:HASH160_LENGTH]
