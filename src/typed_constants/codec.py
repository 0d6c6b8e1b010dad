"""Binary encoding of typed values at their declared widths."""

from __future__ import annotations

import struct
from collections.abc import Mapping
from typing import Any

from typed_constants.types import (
    OptionalTypeDefinition,
    PrimitiveType,
    PrimitiveTypeDefinition,
    RecordTypeDefinition,
    TypeDefinition,
)

# Presence byte written in front of optional values
ABSENT = 0
PRESENT = 1


def pack_value(type_def: TypeDefinition, value: Any) -> bytes:
    """Serialize a value to bytes.

    - Primitive values: little-endian, exactly the declared width
    - Strings: uint32 byte length followed by UTF-8 bytes
    - Optionals: presence byte, then the element when present
    - Records: each field in declaration order
    """
    if isinstance(type_def, PrimitiveTypeDefinition):
        return _pack_primitive(value, type_def.primitive)
    elif isinstance(type_def, OptionalTypeDefinition):
        if value is None:
            return struct.pack("<B", ABSENT)
        return struct.pack("<B", PRESENT) + pack_value(type_def.element_type, value)
    elif isinstance(type_def, RecordTypeDefinition):
        return _pack_record(value, type_def)
    raise TypeError(f"Cannot serialize type: {type_def.name}")


def _pack_primitive(value: Any, primitive: PrimitiveType) -> bytes:
    if primitive == PrimitiveType.STRING:
        if not isinstance(value, str):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        data = value.encode("utf-8")
        return struct.pack("<I", len(data)) + data
    if primitive == PrimitiveType.BOOL:
        if not isinstance(value, bool):
            raise TypeError(f"Expected bool, got {type(value).__name__}")
    elif primitive == PrimitiveType.F64:
        # bool is an int subclass but never a valid number here
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Expected float, got {type(value).__name__}")
    elif isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected int for {primitive.value}, got {type(value).__name__}")
    try:
        return struct.pack(primitive.struct_format, value)
    except (struct.error, OverflowError) as e:
        raise ValueError(f"Cannot encode {value!r} as {primitive.value}: {e}") from e


def _pack_record(value: Any, type_def: RecordTypeDefinition) -> bytes:
    parts = []
    for f in type_def.fields:
        if isinstance(value, Mapping):
            field_value = value[f.name]
        else:
            field_value = getattr(value, f.name)
        parts.append(pack_value(f.type_def, field_value))
    return b"".join(parts)


def unpack_value(type_def: TypeDefinition, data: bytes, offset: int = 0) -> tuple[Any, int]:
    """Deserialize one value starting at ``offset``.

    Returns:
        The decoded value and the offset just past it.

    Raises:
        ValueError: If the data is truncated or malformed.
    """
    if isinstance(type_def, PrimitiveTypeDefinition):
        return _unpack_primitive(data, offset, type_def.primitive)
    elif isinstance(type_def, OptionalTypeDefinition):
        flag, offset = _read(data, offset, "<B")
        if flag == ABSENT:
            return None, offset
        if flag != PRESENT:
            raise ValueError(f"Invalid presence byte {flag} for {type_def.name}")
        return unpack_value(type_def.element_type, data, offset)
    elif isinstance(type_def, RecordTypeDefinition):
        return _unpack_record(data, offset, type_def)
    raise TypeError(f"Cannot deserialize type: {type_def.name}")


def _unpack_primitive(data: bytes, offset: int, primitive: PrimitiveType) -> tuple[Any, int]:
    if primitive == PrimitiveType.STRING:
        length, offset = _read(data, offset, "<I")
        end = offset + length
        if end > len(data):
            raise ValueError(f"Truncated string at offset {offset}: need {length} bytes")
        return data[offset:end].decode("utf-8"), end
    if primitive == PrimitiveType.BOOL:
        flag, next_offset = _read(data, offset, "<B")
        if flag not in (0, 1):
            raise ValueError(f"Invalid bool byte {flag} at offset {offset}")
        return bool(flag), next_offset
    return _read(data, offset, primitive.struct_format)


def _unpack_record(
    data: bytes, offset: int, type_def: RecordTypeDefinition
) -> tuple[Any, int]:
    values: dict[str, Any] = {}
    for f in type_def.fields:
        values[f.name], offset = unpack_value(f.type_def, data, offset)
    if type_def.python_type is not None:
        return type_def.python_type(**values), offset
    return values, offset


def _read(data: bytes, offset: int, fmt: str) -> tuple[Any, int]:
    size = struct.calcsize(fmt)
    if offset + size > len(data):
        raise ValueError(f"Truncated data at offset {offset}: need {size} bytes")
    return struct.unpack_from(fmt, data, offset)[0], offset + size
