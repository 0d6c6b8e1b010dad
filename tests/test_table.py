"""Tests for ConstantTable evaluation, binding and encoding."""

from __future__ import annotations

import json
from dataclasses import dataclass

import pytest

from typed_constants.table import ConstantTable, SealedConstants
from typed_constants.types import (
    ConstantDefinition,
    ConstantRef,
    FieldDefinition,
    RecordTypeDefinition,
    TypeRegistry,
)


@dataclass(frozen=True)
class Point(metaclass=SealedConstants):
    x: int
    y: int


@pytest.fixture
def registry():
    return TypeRegistry()


def _point_type(registry, constants, python_type=Point):
    record = registry.register_stub("point")
    record.fields = [
        FieldDefinition("x", registry.get_or_raise("i16")),
        FieldDefinition("y", registry.get_or_raise("i16")),
    ]
    record.constants = constants(record)
    record.python_type = python_type
    return record


class TestEvaluation:
    """Declarations are evaluated once, in order."""

    def test_values_and_order(self, registry):
        """Test evaluated values and declaration order."""
        record = _point_type(
            registry,
            lambda r: [
                ConstantDefinition("LIMIT", registry.get_or_raise("i16"), 10),
                ConstantDefinition("ORIGIN", r, {"x": 0, "y": 0}),
                ConstantDefinition("MISSING", registry.get_optional_type("i8"), None),
            ],
        )
        table = ConstantTable(record)

        assert list(table) == ["LIMIT", "ORIGIN", "MISSING"]
        assert len(table) == 3
        assert table["LIMIT"] == 10
        assert table["ORIGIN"] == Point(0, 0)
        assert table["MISSING"] is None
        assert "MISSING" in table
        assert table.get("NOPE") is None

    def test_references_resolve_to_earlier_constants(self, registry):
        """Test that references resolve to earlier constants."""
        record = _point_type(
            registry,
            lambda r: [
                ConstantDefinition("SIDE", registry.get_or_raise("i16"), 7),
                ConstantDefinition("CORNER", r, {"x": ConstantRef("SIDE"), "y": ConstantRef("SIDE")}),
                ConstantDefinition("ALIAS", r, ConstantRef("CORNER")),
            ],
        )
        table = ConstantTable(record)
        assert table["CORNER"] == Point(7, 7)
        assert table["ALIAS"] is table["CORNER"]

    def test_forward_reference_rejected(self, registry):
        """Test that referencing a later constant raises KeyError."""
        record = _point_type(
            registry,
            lambda r: [
                ConstantDefinition("A", registry.get_or_raise("i16"), ConstantRef("B")),
                ConstantDefinition("B", registry.get_or_raise("i16"), 1),
            ],
        )
        with pytest.raises(KeyError):
            ConstantTable(record)

    def test_out_of_width_constant_rejected(self, registry):
        """Test that an out-of-width constant raises ValueError."""
        record = _point_type(
            registry,
            lambda r: [ConstantDefinition("BIG", registry.get_or_raise("i8"), 300)],
        )
        with pytest.raises(ValueError):
            ConstantTable(record)

    def test_out_of_width_record_field_rejected(self, registry):
        """Test that an out-of-width record field raises ValueError."""
        record = _point_type(
            registry,
            lambda r: [ConstantDefinition("FAR", r, Point(1, 40000))],
        )
        with pytest.raises(ValueError):
            ConstantTable(record)

    def test_duplicate_constant_rejected(self, registry):
        """Test that a constant declared twice raises ValueError."""
        record = _point_type(
            registry,
            lambda r: [
                ConstantDefinition("A", registry.get_or_raise("i16"), 1),
                ConstantDefinition("A", registry.get_or_raise("i16"), 2),
            ],
        )
        with pytest.raises(ValueError):
            ConstantTable(record)

    def test_python_type_fields_must_match(self, registry):
        """Test that the Python type must match the record fields."""
        @dataclass(frozen=True)
        class Other:
            y: int
            x: int

        record = _point_type(registry, lambda r: [], python_type=Other)
        with pytest.raises(ValueError):
            ConstantTable(record)

    def test_unknown_name(self, registry):
        """Test that unknown constant names raise KeyError."""
        table = ConstantTable(_point_type(registry, lambda r: []))
        with pytest.raises(KeyError):
            table["NOPE"]
        with pytest.raises(KeyError):
            table.type_of("NOPE")

    def test_no_mutation_api(self, registry):
        """Test that the table does not support item assignment."""
        table = ConstantTable(
            _point_type(
                registry,
                lambda r: [ConstantDefinition("A", registry.get_or_raise("i16"), 1)],
            )
        )
        with pytest.raises(TypeError):
            table["A"] = 2  # type: ignore[index]


class TestBind:
    """Binding publishes constants on a class and seals it."""

    def test_bind_and_seal(self, registry):
        """Test binding constants onto a class and sealing it."""
        @dataclass(frozen=True)
        class Size(metaclass=SealedConstants):
            w: int
            h: int

        record = registry.register_stub("size")
        record.fields = [
            FieldDefinition("w", registry.get_or_raise("i32")),
            FieldDefinition("h", registry.get_or_raise("i32")),
        ]
        record.constants = [ConstantDefinition("UNIT", record, {"w": 1, "h": 1})]
        record.python_type = Size

        table = ConstantTable(record)
        table.bind(Size)

        assert Size.is_sealed
        assert Size.UNIT == Size(1, 1)
        with pytest.raises(AttributeError):
            Size.UNIT = Size(2, 2)
        with pytest.raises(AttributeError):
            del Size.UNIT
        with pytest.raises(AttributeError):
            table.bind(Size)

    def test_bind_requires_metaclass(self, registry):
        """Test that binding requires the SealedConstants metaclass."""
        class Plain:
            pass

        table = ConstantTable(_point_type(registry, lambda r: [], python_type=None))
        with pytest.raises(TypeError):
            table.bind(Plain)


class TestDescribeAndEncode:
    """Descriptions and binary images of a table."""

    @pytest.fixture
    def table(self, registry):
        record = _point_type(
            registry,
            lambda r: [
                ConstantDefinition("LIMIT", registry.get_or_raise("i16"), -3),
                ConstantDefinition("ORIGIN", r, {"x": 0, "y": 1}),
                ConstantDefinition("MISSING", registry.get_optional_type("i8"), None),
            ],
        )
        return ConstantTable(record)

    def test_describe(self, table):
        """Test the JSON-compatible description."""
        assert table.describe() == {
            "type": "point",
            "fields": [{"name": "x", "type": "i16"}, {"name": "y", "type": "i16"}],
            "constants": {
                "LIMIT": {"type": "i16", "value": -3},
                "ORIGIN": {"type": "point", "value": {"x": 0, "y": 1}},
                "MISSING": {"type": "optional<i8>", "value": None},
            },
        }

    def test_to_json(self, table):
        """Test that to_json serializes describe()."""
        assert json.loads(table.to_json()) == table.describe()

    def test_to_bytes(self, table):
        """Test the binary image and its decoding."""
        data = table.to_bytes()
        assert data == b"\xfd\xff" + b"\x00\x00\x01\x00" + b"\x00"
        assert ConstantTable.decode(table.record_type, data) == dict(table)

    def test_decode_rejects_trailing_bytes(self, table):
        """Test that trailing bytes raise ValueError."""
        with pytest.raises(ValueError):
            ConstantTable.decode(table.record_type, table.to_bytes() + b"\x00")

    def test_decode_rejects_truncated_data(self, table):
        """Test that truncated images raise ValueError."""
        with pytest.raises(ValueError):
            ConstantTable.decode(table.record_type, table.to_bytes()[:-2])
