"""Declared types for constant tables."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any


class PrimitiveType(Enum):
    """Built-in primitive types a constant or field can be declared with."""

    BOOL = "bool"
    I8 = "i8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    F64 = "f64"
    STRING = "string"

    @property
    def size_bytes(self) -> int:
        """Return the encoded size in bytes for this primitive type.

        Strings are variable-length; their size is that of the length prefix.
        """
        sizes = {
            PrimitiveType.BOOL: 1,
            PrimitiveType.I8: 1,
            PrimitiveType.I16: 2,
            PrimitiveType.I32: 4,
            PrimitiveType.I64: 8,
            PrimitiveType.F64: 8,
            PrimitiveType.STRING: 4,  # uint32 byte length
        }
        return sizes[self]

    @property
    def struct_format(self) -> str:
        """Return the little-endian struct format for this primitive type."""
        formats = {
            PrimitiveType.BOOL: "<?",
            PrimitiveType.I8: "<b",
            PrimitiveType.I16: "<h",
            PrimitiveType.I32: "<i",
            PrimitiveType.I64: "<q",
            PrimitiveType.F64: "<d",
            PrimitiveType.STRING: "<I",
        }
        return formats[self]

    @property
    def is_integer(self) -> bool:
        return self in _INTEGER_TYPES

    @property
    def bounds(self) -> tuple[int, int] | None:
        """Return the inclusive signed range for integer types, else None."""
        if not self.is_integer:
            return None
        bits = self.size_bytes * 8
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1


_INTEGER_TYPES = frozenset(
    {PrimitiveType.I8, PrimitiveType.I16, PrimitiveType.I32, PrimitiveType.I64}
)


@dataclass
class TypeDefinition:
    """Base class for all type definitions."""

    name: str

    @property
    def is_primitive(self) -> bool:
        """Return whether this type is a primitive type."""
        return False

    @property
    def is_optional(self) -> bool:
        """Return whether this type is an optional type."""
        return False

    @property
    def is_record(self) -> bool:
        """Return whether this type is a record type."""
        return False


@dataclass
class PrimitiveTypeDefinition(TypeDefinition):
    """Type definition wrapping a primitive type."""

    primitive: PrimitiveType

    @property
    def is_primitive(self) -> bool:
        return True


@dataclass
class OptionalTypeDefinition(TypeDefinition):
    """Type definition for optional<T>: a present value of T, or absent (None)."""

    element_type: TypeDefinition

    @property
    def is_optional(self) -> bool:
        return True


@dataclass
class FieldDefinition:
    """Definition of a field within a record type."""

    name: str
    type_def: TypeDefinition


@dataclass(frozen=True)
class ConstantRef:
    """A declared value that names another constant of the same record."""

    name: str


@dataclass
class ConstantDefinition:
    """A named constant declared on a record type.

    ``value`` is the declared literal. For record-typed constants it may be an
    instance of the record's Python type or a mapping of field values. A
    :class:`ConstantRef` may stand for the whole value or for a field value
    inside such a mapping.
    """

    name: str
    type_def: TypeDefinition
    value: Any


@dataclass
class RecordTypeDefinition(TypeDefinition):
    """Type definition for record types.

    A record has an ordered, fixed set of fields and may declare constants,
    including constants of its own type.
    """

    fields: list[FieldDefinition] = field(default_factory=list)
    constants: list[ConstantDefinition] = field(default_factory=list)
    python_type: type | None = None

    @property
    def is_record(self) -> bool:
        return True

    def get_field(self, name: str) -> FieldDefinition | None:
        """Get a field by name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None


def check_value(type_def: TypeDefinition, value: Any) -> Any:
    """Check a declared value against its type and return it in canonical form.

    Integers must fit the signed range of their declared width; they are never
    wrapped or reinterpreted. ``f64`` values come back as ``float`` and record
    mappings come back as instances of the record's Python type.

    Raises:
        TypeError: If the value has the wrong Python type.
        ValueError: If an integer lies outside its declared width.
    """
    if isinstance(type_def, PrimitiveTypeDefinition):
        return _check_primitive(type_def.primitive, value)
    if isinstance(type_def, OptionalTypeDefinition):
        if value is None:
            return None
        return check_value(type_def.element_type, value)
    if isinstance(type_def, RecordTypeDefinition):
        return _check_record(type_def, value)
    raise TypeError(f"Cannot check values of type: {type_def.name}")


def _check_primitive(primitive: PrimitiveType, value: Any) -> Any:
    if primitive == PrimitiveType.BOOL:
        if not isinstance(value, bool):
            raise TypeError(f"Expected bool, got {type(value).__name__}")
        return value
    if primitive == PrimitiveType.STRING:
        if not isinstance(value, str):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        return value
    if primitive == PrimitiveType.F64:
        # bool is an int subclass but never a valid number here
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Expected float, got {type(value).__name__}")
        try:
            return float(value)
        except OverflowError:
            raise ValueError(f"Value {value} out of range for f64") from None

    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected int for {primitive.value}, got {type(value).__name__}")
    low, high = primitive.bounds  # type: ignore[misc]
    if not low <= value <= high:
        raise ValueError(f"Value {value} out of range for {primitive.value} [{low}, {high}]")
    return value


def _check_record(type_def: RecordTypeDefinition, value: Any) -> Any:
    cls = type_def.python_type
    if isinstance(value, Mapping):
        unknown = set(value) - {f.name for f in type_def.fields}
        if unknown:
            raise ValueError(
                f"Unknown field(s) for '{type_def.name}': {', '.join(sorted(unknown))}"
            )
        missing = [f.name for f in type_def.fields if f.name not in value]
        if missing:
            raise ValueError(f"Missing field(s) for '{type_def.name}': {', '.join(missing)}")
        checked = {f.name: check_value(f.type_def, value[f.name]) for f in type_def.fields}
        return cls(**checked) if cls is not None else checked

    if cls is None or not isinstance(value, cls):
        raise TypeError(f"Expected '{type_def.name}' record, got {type(value).__name__}")
    for f in type_def.fields:
        check_value(f.type_def, getattr(value, f.name))
    return value


def record_field_names(cls: type) -> list[str]:
    """Return the dataclass field names of a record's Python type, in order."""
    if not is_dataclass(cls):
        raise TypeError(f"{cls.__name__} is not a dataclass")
    return [f.name for f in fields(cls)]


class TypeRegistry:
    """Registry of all defined types."""

    def __init__(self) -> None:
        self._types: dict[str, TypeDefinition] = {}
        self._register_primitives()

    def _register_primitives(self) -> None:
        """Register all primitive types."""
        for pt in PrimitiveType:
            self._types[pt.value] = PrimitiveTypeDefinition(name=pt.value, primitive=pt)

    def register(self, type_def: TypeDefinition) -> None:
        """Register a type definition."""
        if type_def.name in self._types:
            raise ValueError(f"Type '{type_def.name}' is already defined")
        self._types[type_def.name] = type_def

    def get(self, name: str) -> TypeDefinition | None:
        """Get a type by name."""
        return self._types.get(name)

    def get_or_raise(self, name: str) -> TypeDefinition:
        """Get a type by name, raising if not found."""
        type_def = self._types.get(name)
        if type_def is None:
            raise KeyError(f"Type '{name}' not found")
        return type_def

    def get_optional_type(self, element_type_name: str) -> OptionalTypeDefinition:
        """Get or create an optional type for the given element type."""
        optional_name = f"optional<{element_type_name}>"
        existing = self._types.get(optional_name)
        if existing is not None:
            if not isinstance(existing, OptionalTypeDefinition):
                raise TypeError(f"Type '{optional_name}' exists but is not an optional type")
            return existing

        element_type = self.get_or_raise(element_type_name)
        if isinstance(element_type, OptionalTypeDefinition):
            raise TypeError(f"Optional types cannot be nested: '{optional_name}'")
        optional_type = OptionalTypeDefinition(name=optional_name, element_type=element_type)
        self._types[optional_name] = optional_type
        return optional_type

    def register_stub(self, name: str) -> RecordTypeDefinition:
        """Pre-register an empty record for self-references.

        Idempotent: returns existing stub if name is already an empty record.
        Raises ValueError if name is registered with a non-empty type.
        """
        existing = self._types.get(name)
        if existing is not None:
            if isinstance(existing, RecordTypeDefinition) and not existing.fields:
                return existing
            raise ValueError(f"Type '{name}' is already defined")
        stub = RecordTypeDefinition(name=name)
        self._types[name] = stub
        return stub

    def list_types(self) -> list[str]:
        """List all registered type names."""
        return list(self._types.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._types
