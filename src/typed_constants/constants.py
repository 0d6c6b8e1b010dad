"""The ``constants`` record and its constant table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from typed_constants.table import ConstantTable, SealedConstants
from typed_constants.types import (
    ConstantDefinition,
    ConstantRef,
    FieldDefinition,
    RecordTypeDefinition,
    TypeRegistry,
)


@dataclass(frozen=True)
class Constants(metaclass=SealedConstants):
    """Immutable record of an integer and a string.

    Constructing one never fails and never validates; ``some_integer`` is
    declared as a signed 32-bit integer. The class also carries the constants
    declared on the record, bound once at import and read-only afterwards.
    """

    some_integer: int
    some_string: str

    BOOL_CONSTANT: ClassVar[bool]
    I8_CONSTANT: ClassVar[int]
    I16_CONSTANT: ClassVar[int]
    I32_CONSTANT: ClassVar[int]
    I64_CONSTANT: ClassVar[int]
    F64_CONSTANT: ClassVar[float]
    STRING_CONSTANT: ClassVar[str]
    OPTIONAL_INTEGER_CONSTANT: ClassVar[int | None]
    OBJECT_CONSTANT: ClassVar[Constants]


def _build_record_type(registry: TypeRegistry) -> RecordTypeDefinition:
    # Stub first so OBJECT_CONSTANT can be declared with the record's own type
    record = registry.register_stub("constants")
    t = registry.get_or_raise

    record.fields = [
        FieldDefinition("some_integer", t("i32")),
        FieldDefinition("some_string", t("string")),
    ]
    record.constants = [
        ConstantDefinition("BOOL_CONSTANT", t("bool"), True),
        ConstantDefinition("I8_CONSTANT", t("i8"), 1),
        ConstantDefinition("I16_CONSTANT", t("i16"), 2),
        ConstantDefinition("I32_CONSTANT", t("i32"), 3),
        ConstantDefinition("I64_CONSTANT", t("i64"), 4),
        ConstantDefinition("F64_CONSTANT", t("f64"), 5.0),
        ConstantDefinition("STRING_CONSTANT", t("string"), "string-constant"),
        ConstantDefinition(
            "OPTIONAL_INTEGER_CONSTANT", registry.get_optional_type("i32"), 6
        ),
        ConstantDefinition(
            "OBJECT_CONSTANT",
            record,
            {
                "some_integer": ConstantRef("I32_CONSTANT"),
                "some_string": ConstantRef("STRING_CONSTANT"),
            },
        ),
    ]
    record.python_type = Constants
    return record


REGISTRY = TypeRegistry()
CONSTANTS_TYPE = _build_record_type(REGISTRY)
CONSTANT_TABLE = ConstantTable(CONSTANTS_TYPE)
CONSTANT_TABLE.bind(Constants)
