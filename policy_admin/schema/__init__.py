"""
Dynamic-schema engine: field definitions, schema parsing and payload validation.
"""
from .errors import ConfigurationError, ConflictError, NotFoundError, ValidationFailure
from .field_definition import (
    ArrayField,
    BooleanField,
    DateField,
    DependsOn,
    FieldDefinition,
    NumberField,
    ObjectField,
    Schema,
    StringField,
    apply_defaults,
    dump_schema,
    parse_field,
    parse_schema,
)
from .validator import Violation, format_violations, sort_violations, validate, violations_to_dict

__all__ = [
    "ArrayField",
    "BooleanField",
    "ConfigurationError",
    "ConflictError",
    "DateField",
    "DependsOn",
    "FieldDefinition",
    "NotFoundError",
    "NumberField",
    "ObjectField",
    "Schema",
    "StringField",
    "ValidationFailure",
    "Violation",
    "apply_defaults",
    "dump_schema",
    "format_violations",
    "parse_field",
    "parse_schema",
    "sort_violations",
    "validate",
    "violations_to_dict",
]
