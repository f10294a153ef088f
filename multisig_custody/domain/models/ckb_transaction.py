"""Immutable view of a CKB transaction in JSON-RPC ``TransactionView`` form.

The engine treats a proposal payload as opaque apart from:
- its input out points (ownership validation),
- its first output (destination and amount for listings),
- witness 0 (signature accumulation),
- its transaction id, the blake2b-256 of the serialized ``RawTransaction``.

Payloads are parsed once into these frozen dataclasses and re-serialized to
the same JSON shape the node accepts.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from multisig_custody.domain.errors.transaction import InvalidPayloadError
from multisig_custody.domain.primitives import molecule
from multisig_custody.domain.primitives.ckb_hash import blake2b_256


class HashType(str, Enum):
    """How a script's ``code_hash`` is matched against deployed code."""

    DATA = "data"
    TYPE = "type"
    DATA1 = "data1"
    DATA2 = "data2"

    @property
    def code(self) -> int:
        return _HASH_TYPE_CODES[self]

    @classmethod
    def from_code(cls, code: int) -> HashType:
        for hash_type, value in _HASH_TYPE_CODES.items():
            if value == code:
                return hash_type
        raise ValueError(f"unknown hash type code {code}")


_HASH_TYPE_CODES = {
    HashType.DATA: 0,
    HashType.TYPE: 1,
    HashType.DATA1: 2,
    HashType.DATA2: 4,
}


class DepType(str, Enum):
    """Cell dependency kind."""

    CODE = "code"
    DEP_GROUP = "dep_group"

    @property
    def code(self) -> int:
        return 0 if self is DepType.CODE else 1


def to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def _hex_bytes(value: Any, field: str, length: int | None = None) -> bytes:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise InvalidPayloadError(f"{field} must be a 0x-prefixed hex string")
    try:
        data = bytes.fromhex(value[2:])
    except ValueError:
        raise InvalidPayloadError(f"{field} is not valid hex") from None
    if length is not None and len(data) != length:
        raise InvalidPayloadError(f"{field} must be {length} bytes, got {len(data)}")
    return data


def _hex_uint(value: Any, field: str, bits: int) -> int:
    if not isinstance(value, str) or not value.startswith("0x") or len(value) < 3:
        raise InvalidPayloadError(f"{field} must be a 0x-prefixed hex number")
    try:
        number = int(value[2:], 16)
    except ValueError:
        raise InvalidPayloadError(f"{field} is not a hex number") from None
    if number >= 1 << bits:
        raise InvalidPayloadError(f"{field} does not fit in {bits} bits")
    return number


def _field(obj: Any, key: str, where: str) -> Any:
    if not isinstance(obj, Mapping):
        raise InvalidPayloadError(f"{where} must be an object")
    if key not in obj:
        raise InvalidPayloadError(f"{where}.{key} is missing")
    return obj[key]


def _list(obj: Any, key: str, where: str) -> list[Any]:
    value = _field(obj, key, where)
    if not isinstance(value, list):
        raise InvalidPayloadError(f"{where}.{key} must be a list")
    return value


@dataclass(frozen=True)
class Script:
    """A lock or type script."""

    code_hash: bytes
    hash_type: HashType
    args: bytes

    @classmethod
    def from_json(cls, obj: Any, where: str = "script") -> Script:
        raw_hash_type = _field(obj, "hash_type", where)
        try:
            hash_type = HashType(raw_hash_type)
        except ValueError:
            raise InvalidPayloadError(
                f"{where}.hash_type {raw_hash_type!r} is unknown"
            ) from None
        return cls(
            code_hash=_hex_bytes(_field(obj, "code_hash", where), f"{where}.code_hash", 32),
            hash_type=hash_type,
            args=_hex_bytes(_field(obj, "args", where), f"{where}.args"),
        )

    def to_json(self) -> dict[str, str]:
        return {
            "code_hash": to_hex(self.code_hash),
            "hash_type": self.hash_type.value,
            "args": to_hex(self.args),
        }

    def serialize(self) -> bytes:
        return molecule.serialize_script(self.code_hash, self.hash_type.code, self.args)


@dataclass(frozen=True)
class OutPoint:
    """Reference to a cell: creating transaction hash plus output index."""

    tx_hash: bytes
    index: int

    @classmethod
    def from_json(cls, obj: Any, where: str = "out_point") -> OutPoint:
        return cls(
            tx_hash=_hex_bytes(_field(obj, "tx_hash", where), f"{where}.tx_hash", 32),
            index=_hex_uint(_field(obj, "index", where), f"{where}.index", 32),
        )

    def to_json(self) -> dict[str, str]:
        return {"tx_hash": to_hex(self.tx_hash), "index": hex(self.index)}

    def serialize(self) -> bytes:
        return molecule.serialize_out_point(self.tx_hash, self.index)

    def __str__(self) -> str:
        return f"{to_hex(self.tx_hash)}:{self.index}"


@dataclass(frozen=True)
class CellDep:
    out_point: OutPoint
    dep_type: DepType

    @classmethod
    def from_json(cls, obj: Any, where: str = "cell_dep") -> CellDep:
        raw_dep_type = _field(obj, "dep_type", where)
        try:
            dep_type = DepType(raw_dep_type)
        except ValueError:
            raise InvalidPayloadError(
                f"{where}.dep_type {raw_dep_type!r} is unknown"
            ) from None
        return cls(
            out_point=OutPoint.from_json(
                _field(obj, "out_point", where), f"{where}.out_point"
            ),
            dep_type=dep_type,
        )

    def to_json(self) -> dict[str, Any]:
        return {"out_point": self.out_point.to_json(), "dep_type": self.dep_type.value}

    def serialize(self) -> bytes:
        return molecule.serialize_cell_dep(
            self.out_point.tx_hash, self.out_point.index, self.dep_type.code
        )


@dataclass(frozen=True)
class CellInput:
    previous_output: OutPoint
    since: int = 0

    @classmethod
    def from_json(cls, obj: Any, where: str = "input") -> CellInput:
        return cls(
            previous_output=OutPoint.from_json(
                _field(obj, "previous_output", where), f"{where}.previous_output"
            ),
            since=_hex_uint(_field(obj, "since", where), f"{where}.since", 64),
        )

    def to_json(self) -> dict[str, Any]:
        return {"since": hex(self.since), "previous_output": self.previous_output.to_json()}

    def serialize(self) -> bytes:
        return molecule.serialize_cell_input(
            self.since, self.previous_output.tx_hash, self.previous_output.index
        )


@dataclass(frozen=True)
class CellOutput:
    """A transaction output; ``capacity`` is in shannons."""

    capacity: int
    lock: Script
    type: Script | None = None

    @classmethod
    def from_json(cls, obj: Any, where: str = "output") -> CellOutput:
        type_obj = obj.get("type") if isinstance(obj, Mapping) else None
        return cls(
            capacity=_hex_uint(_field(obj, "capacity", where), f"{where}.capacity", 64),
            lock=Script.from_json(_field(obj, "lock", where), f"{where}.lock"),
            type=None if type_obj is None else Script.from_json(type_obj, f"{where}.type"),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "capacity": hex(self.capacity),
            "lock": self.lock.to_json(),
            "type": None if self.type is None else self.type.to_json(),
        }

    def serialize(self) -> bytes:
        return molecule.serialize_cell_output(
            self.capacity,
            self.lock.serialize(),
            None if self.type is None else self.type.serialize(),
        )


@dataclass(frozen=True)
class CkbTransaction:
    """A parsed transaction proposal."""

    version: int
    cell_deps: tuple[CellDep, ...]
    header_deps: tuple[bytes, ...]
    inputs: tuple[CellInput, ...]
    outputs: tuple[CellOutput, ...]
    outputs_data: tuple[bytes, ...]
    witnesses: tuple[bytes, ...]

    @classmethod
    def from_json(cls, payload: str | Mapping[str, Any]) -> CkbTransaction:
        """Parse a ``TransactionView`` (JSON text or decoded object).

        A ``hash`` field, when present, must match the computed id.

        Raises:
            InvalidPayloadError: If the payload is not a well-formed
                transaction.
        """
        if isinstance(payload, str):
            try:
                obj = json.loads(payload)
            except json.JSONDecodeError as exc:
                raise InvalidPayloadError(f"not valid JSON ({exc.msg})") from exc
        else:
            obj = payload
        if not isinstance(obj, Mapping):
            raise InvalidPayloadError("transaction must be a JSON object")

        where = "transaction"
        outputs = tuple(
            CellOutput.from_json(o, f"outputs[{i}]")
            for i, o in enumerate(_list(obj, "outputs", where))
        )
        outputs_data = tuple(
            _hex_bytes(d, f"outputs_data[{i}]")
            for i, d in enumerate(_list(obj, "outputs_data", where))
        )
        if len(outputs) != len(outputs_data):
            raise InvalidPayloadError("outputs and outputs_data differ in length")

        tx = cls(
            version=_hex_uint(_field(obj, "version", where), "version", 32),
            cell_deps=tuple(
                CellDep.from_json(d, f"cell_deps[{i}]")
                for i, d in enumerate(_list(obj, "cell_deps", where))
            ),
            header_deps=tuple(
                _hex_bytes(h, f"header_deps[{i}]", 32)
                for i, h in enumerate(_list(obj, "header_deps", where))
            ),
            inputs=tuple(
                CellInput.from_json(inp, f"inputs[{i}]")
                for i, inp in enumerate(_list(obj, "inputs", where))
            ),
            outputs=outputs,
            outputs_data=outputs_data,
            witnesses=tuple(
                _hex_bytes(w, f"witnesses[{i}]")
                for i, w in enumerate(_list(obj, "witnesses", where))
            ),
        )
        if not tx.inputs:
            raise InvalidPayloadError("transaction has no inputs")
        if not tx.outputs:
            raise InvalidPayloadError("transaction has no outputs")

        declared = obj.get("hash")
        if declared is not None and str(declared).lower() != tx.tx_id:
            raise InvalidPayloadError(
                f"declared hash {declared} does not match computed {tx.tx_id}"
            )
        return tx

    def to_json(self) -> dict[str, Any]:
        """Render as a ``TransactionView`` including ``hash``."""
        return {
            "version": hex(self.version),
            "cell_deps": [dep.to_json() for dep in self.cell_deps],
            "header_deps": [to_hex(h) for h in self.header_deps],
            "inputs": [inp.to_json() for inp in self.inputs],
            "outputs": [out.to_json() for out in self.outputs],
            "outputs_data": [to_hex(d) for d in self.outputs_data],
            "witnesses": [to_hex(w) for w in self.witnesses],
            "hash": self.tx_id,
        }

    def to_json_text(self) -> str:
        return json.dumps(self.to_json(), separators=(",", ":"))

    def serialize_raw(self) -> bytes:
        """Serialize the witness-free ``RawTransaction``."""
        return molecule.serialize_raw_transaction(
            version=self.version,
            cell_deps=[dep.serialize() for dep in self.cell_deps],
            header_deps=list(self.header_deps),
            inputs=[inp.serialize() for inp in self.inputs],
            outputs=[out.serialize() for out in self.outputs],
            outputs_data=list(self.outputs_data),
        )

    @property
    def hash(self) -> bytes:
        return blake2b_256(self.serialize_raw())

    @property
    def tx_id(self) -> str:
        """Lowercase 0x-prefixed transaction hash."""
        return to_hex(self.hash)

    @property
    def input_out_points(self) -> list[OutPoint]:
        return [inp.previous_output for inp in self.inputs]

    @property
    def first_output(self) -> CellOutput:
        return self.outputs[0]

    def with_witnesses(self, witnesses: Sequence[bytes]) -> CkbTransaction:
        """Return a copy with a replaced witness list (id unchanged)."""
        return replace(self, witnesses=tuple(witnesses))
