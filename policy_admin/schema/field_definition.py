"""
Field definitions for admin-authored dynamic schemas.

A schema maps field names to field definitions. Each definition is one member
of a closed union discriminated by ``type``; every member declares only the
constraints that apply to it and rejects any other key, so a ``string`` field
carrying ``min``/``max`` is refused when the schema is parsed.

Python attribute names are snake_case, the wire format (what admins submit
and what gets persisted) uses the camelCase aliases.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

FIELD_TYPES = ("string", "number", "date", "boolean", "object", "array")

DEFAULT_MAX_SCHEMA_DEPTH = 16

# ints stay ints so a stored schema reads back exactly as it was submitted
Number = Union[StrictInt, float]
PositiveNumber = Union[Annotated[StrictInt, Field(gt=0)], Annotated[float, Field(gt=0)]]


class DependsOn(BaseModel):
    """Gate: the owning field is only evaluated when ``payload[field] == value``."""

    model_config = ConfigDict(extra="forbid")

    field: str = Field(min_length=1)
    value: Any


class _FieldBase(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    label: str = Field(min_length=1)
    description: Optional[str] = None
    required: bool = False

    # UI metadata, carried through untouched
    display_order: Optional[int] = Field(default=None, alias="displayOrder", ge=0)
    placeholder: Optional[str] = None
    help_text: Optional[str] = Field(default=None, alias="helpText")
    hidden: Optional[bool] = None

    default_value: Any = Field(default=None, alias="default")
    depends_on: Optional[DependsOn] = Field(default=None, alias="dependsOn")


class StringField(_FieldBase):
    type: Literal["string"]
    min_length: Optional[int] = Field(default=None, alias="minLength", ge=0)
    max_length: Optional[int] = Field(default=None, alias="maxLength", ge=0)
    pattern: Optional[str] = None
    enum_values: Optional[List[str]] = Field(default=None, alias="enum")

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"pattern is not a valid regular expression ({e})")
        return v

    @model_validator(mode="after")
    def _length_bounds(self) -> "StringField":
        if self.min_length is not None and self.max_length is not None and self.min_length > self.max_length:
            raise ValueError("minLength cannot be greater than maxLength")
        return self


class NumberField(_FieldBase):
    type: Literal["number"]
    minimum: Optional[Number] = Field(default=None, alias="min")
    maximum: Optional[Number] = Field(default=None, alias="max")
    step: Optional[PositiveNumber] = None

    @model_validator(mode="after")
    def _value_bounds(self) -> "NumberField":
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ValueError("min cannot be greater than max")
        return self


class DateField(_FieldBase):
    type: Literal["date"]


class BooleanField(_FieldBase):
    type: Literal["boolean"]


class ObjectField(_FieldBase):
    type: Literal["object"]
    properties: Optional[Dict[str, FieldDefinition]] = None


class ArrayField(_FieldBase):
    type: Literal["array"]
    min_items: Optional[int] = Field(default=None, alias="minItems", ge=0)
    max_items: Optional[int] = Field(default=None, alias="maxItems", ge=0)
    unique_items: Optional[bool] = Field(default=None, alias="uniqueItems")
    items: Optional[FieldDefinition] = None

    @model_validator(mode="after")
    def _item_bounds(self) -> "ArrayField":
        if self.min_items is not None and self.max_items is not None and self.min_items > self.max_items:
            raise ValueError("minItems cannot be greater than maxItems")
        return self


FieldDefinition = Annotated[
    Union[StringField, NumberField, DateField, BooleanField, ObjectField, ArrayField],
    Field(discriminator="type"),
]

Schema = Dict[str, FieldDefinition]

ObjectField.model_rebuild()
ArrayField.model_rebuild()

FIELD_MODELS = (StringField, NumberField, DateField, BooleanField, ObjectField, ArrayField)

_FIELD_ADAPTER = TypeAdapter(FieldDefinition)
_SCHEMA_ADAPTER = TypeAdapter(Dict[str, FieldDefinition])


# --------------------------------------------------------------------------- #
# Parsing
# --------------------------------------------------------------------------- #
def _plain(value: Any) -> Any:
    """Turn models and arbitrary mappings into plain dicts/lists for parsing."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_unset=True)
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _format_errors(exc: ValidationError) -> List[str]:
    lines: List[str] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        kind = err.get("type")
        if kind == "union_tag_not_found":
            lines.append(f"{'.'.join(loc) or 'field'}: type is required")
        elif kind == "union_tag_invalid":
            lines.append(f"{'.'.join(loc) or 'field'}: type must be one of: {', '.join(FIELD_TYPES)}")
        elif kind == "extra_forbidden" and len(loc) >= 2 and loc[-2] in FIELD_TYPES:
            lines.append(f"{'.'.join(loc[:-2]) or 'field'}: '{loc[-1]}' is not allowed for type '{loc[-2]}'")
        else:
            lines.append(f"{'.'.join(loc) or 'field'}: {err.get('msg')}")
    return lines


def _check_dependency(fdef: Any, path: str, own_name: Optional[str], scope_names: set, errors: List[str]) -> None:
    dep = fdef.depends_on
    if dep is None:
        return
    if own_name is not None and dep.field == own_name:
        errors.append(f"{path}: a field cannot depend on itself")
    elif dep.field not in scope_names:
        errors.append(f"{path}: dependsOn references unknown field '{dep.field}'")


def _check_nested(fdef: Any, path: str, scope_names: set, depth: int, max_depth: int, errors: List[str]) -> None:
    if isinstance(fdef, ObjectField) and fdef.properties:
        _check_scope(fdef.properties, path, depth + 1, max_depth, errors)
    elif isinstance(fdef, ArrayField) and fdef.items is not None:
        item_path = f"{path}[]"
        if depth + 1 > max_depth:
            errors.append(f"{item_path}: nesting exceeds the maximum depth of {max_depth}")
            return
        # array items share the scope the array itself lives in
        _check_dependency(fdef.items, item_path, None, scope_names, errors)
        _check_nested(fdef.items, item_path, scope_names, depth + 1, max_depth, errors)


def _check_scope(scope: Mapping[str, Any], prefix: str, depth: int, max_depth: int, errors: List[str]) -> None:
    if depth > max_depth:
        errors.append(f"{prefix or 'schema'}: nesting exceeds the maximum depth of {max_depth}")
        return
    names = set(scope)
    for name, fdef in scope.items():
        path = f"{prefix}.{name}" if prefix else name
        if not name.strip():
            errors.append(f"{prefix or 'schema'}: field names must not be empty")
            continue
        _check_dependency(fdef, path, name, names, errors)
        _check_nested(fdef, path, names, depth, max_depth, errors)


def parse_schema(raw: Any, *, max_depth: int = DEFAULT_MAX_SCHEMA_DEPTH) -> Schema:
    """
    Parse and check an admin-authored schema definition.

    Accepts a mapping of field name -> definition, where each definition is a
    plain dict (wire shape) or an already-parsed field model.

    Raises:
        ConfigurationError: listing every authoring problem found.
    """
    if raw is None:
        raise ConfigurationError(["schema definition is required"])
    if not isinstance(raw, Mapping):
        raise ConfigurationError(["schema definition must be an object"])

    if all(isinstance(v, FIELD_MODELS) for v in raw.values()):
        schema: Schema = dict(raw)
    else:
        try:
            schema = _SCHEMA_ADAPTER.validate_python(_plain(raw))
        except ValidationError as e:
            raise ConfigurationError(_format_errors(e)) from e

    errors: List[str] = []
    _check_scope(schema, "", 1, max_depth, errors)
    if errors:
        logger.warning("Rejected schema definition: %s", "; ".join(errors))
        raise ConfigurationError(errors)
    return schema


def parse_field(raw: Any, *, max_depth: int = DEFAULT_MAX_SCHEMA_DEPTH) -> FieldDefinition:
    """Parse a single field definition. ``dependsOn`` is not checked here since a lone field has no siblings."""
    if isinstance(raw, FIELD_MODELS):
        fdef = raw
    else:
        try:
            fdef = _FIELD_ADAPTER.validate_python(_plain(raw))
        except ValidationError as e:
            raise ConfigurationError(_format_errors(e)) from e
    errors: List[str] = []
    _check_nested(fdef, "field", set(), 1, max_depth, errors)
    if errors:
        raise ConfigurationError(errors)
    return fdef


def dump_schema(schema: Schema) -> Dict[str, Dict[str, Any]]:
    """Wire-shape (camelCase) dict of a parsed schema, with only the keys that were set."""
    return {name: fdef.model_dump(by_alias=True, exclude_unset=True) for name, fdef in schema.items()}


def apply_defaults(schema: Schema, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of ``payload`` with each absent top-level field filled from its ``default``."""
    out = dict(payload)
    for name, fdef in schema.items():
        if out.get(name) is None and "default_value" in fdef.model_fields_set:
            out[name] = copy.deepcopy(fdef.default_value)
    return out
