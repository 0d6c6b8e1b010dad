"""Typed Constants - immutable records with width-checked constant tables."""

from typed_constants.constants import CONSTANT_TABLE, CONSTANTS_TYPE, Constants
from typed_constants.table import ConstantTable, SealedConstants
from typed_constants.types import (
    ConstantDefinition,
    ConstantRef,
    FieldDefinition,
    OptionalTypeDefinition,
    PrimitiveType,
    PrimitiveTypeDefinition,
    RecordTypeDefinition,
    TypeDefinition,
    TypeRegistry,
)

__all__ = [
    # Record and its constants
    "Constants",
    "CONSTANTS_TYPE",
    "CONSTANT_TABLE",
    # Tables
    "ConstantTable",
    "SealedConstants",
    # Type definitions
    "TypeDefinition",
    "PrimitiveType",
    "PrimitiveTypeDefinition",
    "OptionalTypeDefinition",
    "RecordTypeDefinition",
    "FieldDefinition",
    "ConstantDefinition",
    "ConstantRef",
    "TypeRegistry",
]

__version__ = "0.1.0"
