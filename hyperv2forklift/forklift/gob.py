# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# hyperv2forklift/forklift/gob.py
"""
Byte-exact subset of Go's `encoding/gob` stream encoder.

Forklift's OVA inventory names disks and networks by hashing the gob encoding of
its own Go objects, so the bytes produced here have to match what a fresh
`gob.NewEncoder(&buf).Encode(v)` writes in a fresh Go process:

  * every message is `uint(len) || payload`
  * a struct type is described once per encoder, as `int(-id) || wireType`,
    before the first value of that type; type ids are process-wide in Go, so
    the first user type of a fresh process gets id 64
  * a struct value is `int(id) || (field delta, value)* || 0x00`, zero-valued
    fields omitted
  * a non-struct top-level value is a singleton: `int(id) || 0x00 || value`,
    sent even when zero

Supported values: bool, int, float, str, bytes, and flat structs declared as
dataclasses whose fields carry gob metadata (see `gob_field`). Anything else
raises GobEncodeError.
"""
from __future__ import annotations

import dataclasses
import struct
from typing import Any, Dict, List, Tuple

FIRST_USER_TYPE_ID = 64

# Builtin type ids (encoding/gob/type.go).
BUILTIN_TYPE_IDS: Dict[str, int] = {
    "bool": 1,
    "int": 2,
    "uint": 3,
    "float": 4,
    "bytes": 5,
    "string": 6,
}

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
UINT64_MAX = (1 << 64) - 1

# wireType field numbers; StructT is field 2, so its delta from -1 is 3.
_WIRE_STRUCT_T_DELTA = 3


class GobEncodeError(ValueError):
    """A value has no gob encoding in the supported subset."""


def gob_field(name: str, kind: str, **kwargs: Any):
    """dataclasses.field() that records the Go field name and builtin kind."""
    if kind not in BUILTIN_TYPE_IDS:
        raise ValueError(f"unsupported gob field kind: {kind}")
    return dataclasses.field(metadata={"gob": (name, kind)}, **kwargs)


# --------------------------------------------------------------------------------------
# Primitive writers
# --------------------------------------------------------------------------------------

def encode_uint(x: int) -> bytes:
    if x < 0 or x > UINT64_MAX:
        raise GobEncodeError(f"uint out of range: {x}")
    if x < 0x80:
        return bytes([x])
    body = x.to_bytes((x.bit_length() + 7) // 8, "big")
    return bytes([256 - len(body)]) + body


def encode_int(i: int) -> bytes:
    if i < INT64_MIN or i > INT64_MAX:
        raise GobEncodeError(f"int out of range: {i}")
    u = (i << 1) if i >= 0 else ((~i) << 1) | 1
    return encode_uint(u)


def encode_float(f: float) -> bytes:
    # IEEE-754 bits with the byte order reversed, sent as a uint.
    return encode_uint(int.from_bytes(struct.pack("<d", float(f)), "big"))


def encode_bool(b: bool) -> bytes:
    return encode_uint(1 if b else 0)


def encode_bytes(b: bytes) -> bytes:
    return encode_uint(len(b)) + bytes(b)


def encode_string(s: str) -> bytes:
    return encode_bytes(s.encode("utf-8"))


def _message(payload: bytes) -> bytes:
    return encode_uint(len(payload)) + payload


def _kind_of(value: Any) -> str:
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (bytes, bytearray)):
        return "bytes"
    raise GobEncodeError(f"type {type(value).__name__} has no gob encoding")


def _encode_scalar(kind: str, value: Any) -> bytes:
    try:
        if kind == "bool":
            return encode_bool(bool(value))
        if kind == "int":
            return encode_int(int(value))
        if kind == "uint":
            return encode_uint(int(value))
        if kind == "float":
            return encode_float(float(value))
        if kind == "bytes":
            return encode_bytes(bytes(value))
        if kind == "string":
            return encode_string(str(value))
    except GobEncodeError:
        raise
    except (TypeError, ValueError) as e:
        raise GobEncodeError(f"cannot encode {value!r} as gob {kind}: {e}") from e
    raise GobEncodeError(f"unsupported gob kind: {kind}")


def _is_zero(kind: str, value: Any) -> bool:
    if kind == "string":
        return value == ""
    if kind == "bytes":
        return len(value) == 0
    return not value


def _struct_fields(value: Any) -> Tuple[str, List[Tuple[str, str, Any]]]:
    cls = type(value)
    name = getattr(cls, "__gob_name__", cls.__name__)
    out: List[Tuple[str, str, Any]] = []
    for f in dataclasses.fields(value):
        meta = f.metadata.get("gob")
        if meta is None:
            continue
        gname, kind = meta
        out.append((gname, kind, getattr(value, f.name)))
    if not out:
        raise GobEncodeError(f"gob: type {name} has no exported fields")
    return name, out


# --------------------------------------------------------------------------------------
# Encoder
# --------------------------------------------------------------------------------------

class GobEncoder:
    """
    Stateful like Go's *gob.Encoder: a struct type is described only on its
    first Encode. Use a new instance per independent stream.
    """

    def __init__(self) -> None:
        self._type_ids: Dict[type, int] = {}
        self._next_id = FIRST_USER_TYPE_ID

    def encode(self, value: Any) -> bytes:
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return self._encode_struct(value)
        kind = _kind_of(value)
        payload = encode_int(BUILTIN_TYPE_IDS[kind]) + b"\x00" + _encode_scalar(kind, value)
        return _message(payload)

    def _encode_struct(self, value: Any) -> bytes:
        name, fields = _struct_fields(value)
        out = bytearray()

        cls = type(value)
        type_id = self._type_ids.get(cls)
        if type_id is None:
            type_id = self._next_id
            self._next_id += 1
            self._type_ids[cls] = type_id
            out += _message(encode_int(-type_id) + self._wire_type(name, type_id, fields))

        body = bytearray(encode_int(type_id))
        last = -1
        for idx, (_gname, kind, v) in enumerate(fields):
            if _is_zero(kind, v):
                continue
            body += encode_uint(idx - last)
            body += _encode_scalar(kind, v)
            last = idx
        body += b"\x00"
        out += _message(bytes(body))
        return bytes(out)

    @staticmethod
    def _wire_type(name: str, type_id: int, fields: List[Tuple[str, str, Any]]) -> bytes:
        b = bytearray()
        b += encode_uint(_WIRE_STRUCT_T_DELTA)
        # structType.CommonType{Name, Id}
        b += encode_uint(1)
        b += encode_uint(1) + encode_string(name)
        b += encode_uint(1) + encode_int(type_id)
        b += b"\x00"
        # structType.Field []fieldType{Name, Id}
        b += encode_uint(1)
        b += encode_uint(len(fields))
        for gname, kind, _v in fields:
            b += encode_uint(1) + encode_string(gname)
            b += encode_uint(1) + encode_int(BUILTIN_TYPE_IDS[kind])
            b += b"\x00"
        b += b"\x00"  # end structType
        b += b"\x00"  # end wireType
        return bytes(b)


def gob_encode(value: Any) -> bytes:
    """Encode one value on a fresh encoder."""
    return GobEncoder().encode(value)


__all__ = [
    "BUILTIN_TYPE_IDS",
    "FIRST_USER_TYPE_ID",
    "GobEncodeError",
    "GobEncoder",
    "encode_int",
    "encode_uint",
    "gob_encode",
    "gob_field",
]
