"""Molecule serialization for the CKB structures the engine touches.

Molecule layouts used here:
- Uint32 / Uint64: little-endian fixed width
- fixvec: item count (u32) followed by fixed-size items
- dynvec / table: total size (u32), one u32 offset per item, then items;
  an empty dynvec is just the 4-byte total size
- option: empty when absent, otherwise the inner serialization
- Bytes: a fixvec of bytes (length u32 then data)

Only serialization of ``RawTransaction`` and its members is needed (for
the transaction id); ``WitnessArgs`` is both parsed and built because the
witness encoder edits its ``lock`` field.
"""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass

UINT32 = struct.Struct("<I")
UINT64 = struct.Struct("<Q")

OUT_POINT_SIZE = 36
CELL_DEP_SIZE = 37
CELL_INPUT_SIZE = 44


class MoleculeError(ValueError):
    """Raised when bytes do not follow the expected molecule layout."""


def pack_uint32(value: int) -> bytes:
    return UINT32.pack(value)


def pack_uint64(value: int) -> bytes:
    return UINT64.pack(value)


def unpack_uint32(data: bytes, offset: int = 0) -> int:
    if len(data) < offset + 4:
        raise MoleculeError("truncated uint32")
    return UINT32.unpack_from(data, offset)[0]


def pack_bytes(data: bytes) -> bytes:
    """Serialize a ``Bytes`` (fixvec<byte>)."""
    return pack_uint32(len(data)) + data


def unpack_bytes(data: bytes) -> bytes:
    """Parse a ``Bytes`` serialization and return the raw data."""
    length = unpack_uint32(data)
    if len(data) != 4 + length:
        raise MoleculeError(
            f"Bytes header says {length} bytes, found {len(data) - 4}"
        )
    return data[4:]


def pack_fixvec(items: Sequence[bytes]) -> bytes:
    """Serialize a vector of fixed-size items."""
    return pack_uint32(len(items)) + b"".join(items)


def pack_dynvec(items: Sequence[bytes]) -> bytes:
    """Serialize a vector of dynamic-size items (also the table layout)."""
    header_size = 4 + 4 * len(items)
    total_size = header_size + sum(len(item) for item in items)
    offsets = []
    cursor = header_size
    for item in items:
        offsets.append(pack_uint32(cursor))
        cursor += len(item)
    return pack_uint32(total_size) + b"".join(offsets) + b"".join(items)


pack_table = pack_dynvec


def unpack_table(data: bytes) -> list[bytes]:
    """Split a table (or dynvec) serialization into its raw fields."""
    total_size = unpack_uint32(data)
    if total_size != len(data):
        raise MoleculeError(
            f"table header says {total_size} bytes, found {len(data)}"
        )
    if total_size == 4:
        return []
    first_offset = unpack_uint32(data, 4)
    if first_offset % 4 or first_offset < 8 or first_offset > total_size:
        raise MoleculeError(f"invalid first offset {first_offset}")
    count = first_offset // 4 - 1
    offsets = [unpack_uint32(data, 4 + 4 * i) for i in range(count)]
    offsets.append(total_size)
    for start, end in zip(offsets, offsets[1:]):
        if start > end:
            raise MoleculeError("table offsets are not monotonic")
    return [data[offsets[i] : offsets[i + 1]] for i in range(count)]


def pack_option(inner: bytes | None) -> bytes:
    return b"" if inner is None else inner


# ---------------------------------------------------------------------------
# CKB structures
# ---------------------------------------------------------------------------


def serialize_script(code_hash: bytes, hash_type: int, args: bytes) -> bytes:
    """Serialize a ``Script`` table."""
    return pack_table([code_hash, bytes([hash_type]), pack_bytes(args)])


def serialize_out_point(tx_hash: bytes, index: int) -> bytes:
    return tx_hash + pack_uint32(index)


def serialize_cell_dep(tx_hash: bytes, index: int, dep_type: int) -> bytes:
    return serialize_out_point(tx_hash, index) + bytes([dep_type])


def serialize_cell_input(since: int, tx_hash: bytes, index: int) -> bytes:
    return pack_uint64(since) + serialize_out_point(tx_hash, index)


def serialize_cell_output(
    capacity: int, lock: bytes, type_script: bytes | None
) -> bytes:
    """Serialize a ``CellOutput`` from already-serialized scripts."""
    return pack_table([pack_uint64(capacity), lock, pack_option(type_script)])


def serialize_raw_transaction(
    version: int,
    cell_deps: Sequence[bytes],
    header_deps: Sequence[bytes],
    inputs: Sequence[bytes],
    outputs: Sequence[bytes],
    outputs_data: Sequence[bytes],
) -> bytes:
    """Serialize a ``RawTransaction`` from already-serialized members."""
    return pack_table(
        [
            pack_uint32(version),
            pack_fixvec(cell_deps),
            pack_fixvec(header_deps),
            pack_fixvec(inputs),
            pack_dynvec(outputs),
            pack_dynvec([pack_bytes(data) for data in outputs_data]),
        ]
    )


@dataclass(frozen=True)
class WitnessArgs:
    """The ``WitnessArgs`` table: three optional byte strings."""

    lock: bytes | None = None
    input_type: bytes | None = None
    output_type: bytes | None = None

    @classmethod
    def from_bytes(cls, data: bytes) -> WitnessArgs:
        """Parse a serialized ``WitnessArgs``; empty input is the default."""
        if not data:
            return cls()
        fields = unpack_table(data)
        if len(fields) != 3:
            raise MoleculeError(
                f"WitnessArgs must have 3 fields, found {len(fields)}"
            )
        lock, input_type, output_type = (
            unpack_bytes(field) if field else None for field in fields
        )
        return cls(lock=lock, input_type=input_type, output_type=output_type)

    def to_bytes(self) -> bytes:
        return pack_table(
            [
                pack_option(None if self.lock is None else pack_bytes(self.lock)),
                pack_option(
                    None if self.input_type is None else pack_bytes(self.input_type)
                ),
                pack_option(
                    None if self.output_type is None else pack_bytes(self.output_type)
                ),
            ]
        )
