"""Read-only table of the constants declared on a record type."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from typed_constants.codec import pack_value, unpack_value
from typed_constants.types import (
    ConstantRef,
    RecordTypeDefinition,
    TypeDefinition,
    check_value,
    record_field_names,
)

logger = logging.getLogger(__name__)


class SealedConstants(type):
    """Metaclass for record classes that publish a constant table.

    Until the class is sealed it behaves like any other class. Once sealed,
    class attributes can no longer be rebound or deleted.
    """

    def __setattr__(cls, name: str, value: Any) -> None:
        if cls.__dict__.get("_sealed", False):
            raise AttributeError(f"Cannot rebind '{name}' on sealed class {cls.__name__}")
        super().__setattr__(name, value)

    def __delattr__(cls, name: str) -> None:
        if cls.__dict__.get("_sealed", False):
            raise AttributeError(f"Cannot delete '{name}' on sealed class {cls.__name__}")
        super().__delattr__(name)

    @property
    def is_sealed(cls) -> bool:
        return bool(cls.__dict__.get("_sealed", False))

    def _seal(cls) -> None:
        type.__setattr__(cls, "_sealed", True)


class ConstantTable(Mapping[str, Any]):
    """Evaluated constants of one record type, keyed by constant name.

    Every declaration is evaluated exactly once, in declaration order, when
    the table is built. References to other constants resolve against the
    constants evaluated before them. The resulting table has no mutation API.
    """

    def __init__(self, record_type: RecordTypeDefinition) -> None:
        """Build a constant table.

        Args:
            record_type: Record type whose constant declarations are evaluated.

        Raises:
            KeyError: If a declaration references an unknown or later constant.
            TypeError: If a declared value has the wrong Python type.
            ValueError: If a declared value does not fit its declared type.
        """
        self.record_type = record_type
        if record_type.python_type is not None:
            declared = [f.name for f in record_type.fields]
            actual = record_field_names(record_type.python_type)
            if declared != actual:
                raise ValueError(
                    f"Fields of {record_type.python_type.__name__} {actual} do not match "
                    f"record '{record_type.name}' {declared}"
                )

        values: dict[str, Any] = {}
        types: dict[str, TypeDefinition] = {}
        for constant in record_type.constants:
            if constant.name in values:
                raise ValueError(f"Constant '{constant.name}' is declared twice")
            resolved = self._resolve(constant.value, values)
            values[constant.name] = check_value(constant.type_def, resolved)
            types[constant.name] = constant.type_def

        self._values: Mapping[str, Any] = MappingProxyType(values)
        self._types: Mapping[str, TypeDefinition] = MappingProxyType(types)
        logger.debug(
            "Evaluated %d constants for record '%s'", len(values), record_type.name
        )

    @staticmethod
    def _resolve(value: Any, evaluated: Mapping[str, Any]) -> Any:
        """Replace constant references with already-evaluated values."""
        if isinstance(value, ConstantRef):
            if value.name not in evaluated:
                raise KeyError(
                    f"Constant '{value.name}' is not declared before it is referenced"
                )
            return evaluated[value.name]
        if isinstance(value, Mapping):
            return {k: ConstantTable._resolve(v, evaluated) for k, v in value.items()}
        return value

    def __getitem__(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError:
            raise KeyError(
                f"Constant '{name}' not found in record '{self.record_type.name}'"
            ) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def type_of(self, name: str) -> TypeDefinition:
        """Get the declared type of a constant."""
        try:
            return self._types[name]
        except KeyError:
            raise KeyError(
                f"Constant '{name}' not found in record '{self.record_type.name}'"
            ) from None

    def bind(self, cls: type) -> None:
        """Publish every constant as a class attribute of ``cls``, then seal it."""
        if not isinstance(cls, SealedConstants):
            raise TypeError(f"{cls.__name__} must use the SealedConstants metaclass")
        if cls.is_sealed:
            raise AttributeError(f"{cls.__name__} already has its constants bound")
        for name, value in self._values.items():
            setattr(cls, name, value)
        cls._seal()
        logger.debug("Bound %d constants onto %s", len(self._values), cls.__name__)

    def describe(self) -> dict[str, Any]:
        """Return a JSON-compatible description of the record and its constants."""
        return {
            "type": self.record_type.name,
            "fields": [
                {"name": f.name, "type": f.type_def.name} for f in self.record_type.fields
            ],
            "constants": {
                name: {
                    "type": self._types[name].name,
                    "value": _describe_value(self._types[name], value),
                }
                for name, value in self._values.items()
            },
        }

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize :meth:`describe` to a JSON string."""
        return json.dumps(self.describe(), indent=indent)

    def to_bytes(self) -> bytes:
        """Encode every constant, in declaration order, at its declared width."""
        return b"".join(
            pack_value(self._types[name], value) for name, value in self._values.items()
        )

    @staticmethod
    def decode(record_type: RecordTypeDefinition, data: bytes) -> dict[str, Any]:
        """Decode a constant image produced by :meth:`to_bytes`.

        Raises:
            ValueError: If the data is truncated or has trailing bytes.
        """
        result: dict[str, Any] = {}
        offset = 0
        for constant in record_type.constants:
            result[constant.name], offset = unpack_value(constant.type_def, data, offset)
        if offset != len(data):
            raise ValueError(f"{len(data) - offset} trailing bytes after constant table")
        return result

    def __repr__(self) -> str:
        return f"ConstantTable({self.record_type.name!r}, {len(self)} constants)"


def _describe_value(type_def: TypeDefinition, value: Any) -> Any:
    base = type_def
    if base.is_optional:
        if value is None:
            return None
        base = base.element_type  # type: ignore[attr-defined]
    if isinstance(base, RecordTypeDefinition):
        result = {}
        for f in base.fields:
            field_value = value[f.name] if isinstance(value, Mapping) else getattr(value, f.name)
            result[f.name] = _describe_value(f.type_def, field_value)
        return result
    return value
