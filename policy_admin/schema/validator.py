"""Payload validation against a dynamic schema.

`validate(schema, payload)` walks the schema (not the payload), so absent
required fields are still reported. It never raises for bad payload data:
every failure is collected as a `Violation` and returned. Within one field a
wrong type stops that field's remaining checks; the other fields are still
checked.
"""

from __future__ import annotations

import math
import numbers
import re
import sys
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, localcontext
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from .field_definition import (
    FIELD_MODELS,
    ArrayField,
    BooleanField,
    DateField,
    NumberField,
    ObjectField,
    Schema,
    StringField,
    parse_schema,
)


@dataclass(frozen=True)
class Violation:
    """One rule failure. ``path`` locates it: ``field``, ``field.sub``, ``field[0]``."""

    path: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "message": self.message}


def _fmt(n: Any) -> str:
    if isinstance(n, float) and n.is_integer():
        return str(int(n))
    return str(n)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    if isinstance(value, numbers.Integral):
        # JSON ints are unbounded; anything past the float range is not a usable number
        return abs(value) <= sys.float_info.max
    return math.isfinite(value)


def _is_multiple(value: Any, step: float) -> bool:
    """Exact decimal check, so 0.3 counts as a multiple of 0.1."""
    try:
        with localcontext() as ctx:
            ctx.prec = 400
            return Decimal(str(value)) % Decimal(str(step)) == 0
    except InvalidOperation:
        return math.isclose(math.remainder(value, step), 0.0, abs_tol=1e-9)


# Non-ISO shapes a date string may take (ISO and RFC 2822 are tried first)
DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y %H:%M:%S",
    "%B %d, %Y %H:%M:%S",
)


def _parse_date_string(s: str) -> bool:
    iso = s[:-1] + "+00:00" if s.endswith(("Z", "z")) else s
    try:
        datetime.fromisoformat(iso)
        return True
    except ValueError:
        pass
    try:
        parsedate_to_datetime(s)
        return True
    except (TypeError, ValueError, IndexError):
        pass
    for fmt in DATE_FORMATS:
        try:
            datetime.strptime(s, fmt)
            return True
        except ValueError:
            continue
    return False


def _is_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    s = value.strip()
    return bool(s) and _parse_date_string(s)


def _same(a: Any, b: Any) -> bool:
    """Structural equality where booleans never equal numbers."""
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(_same(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(_same(x, y) for x, y in zip(a, b))
    return a == b


def _scalar_key(value: Any) -> Any:
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, float) and math.isnan(value):
        # NaN never equals anything, itself included
        return ("nan", id(value))
    if isinstance(value, numbers.Number):
        return ("num", value)
    if isinstance(value, str):
        return ("str", value)
    if value is None:
        return ("null",)
    return ("other", value)


def _canonical(value: Any) -> Any:
    """
    Hashable key with the same equality as `_same`. Built iteratively so a
    deeply nested element cannot exhaust the interpreter stack.
    """
    out: List[Any] = []
    stack: List[Any] = [(value, None)]
    while stack:
        node, pending = stack.pop()
        if pending is not None:
            kind, keys = pending
            count = len(keys)
            parts = out[len(out) - count:]
            del out[len(out) - count:]
            if kind == "map":
                out.append(("map", frozenset(zip(keys, parts))))
            else:
                out.append(("seq", tuple(parts)))
        elif isinstance(node, Mapping):
            keys = list(node)
            stack.append((None, ("map", keys)))
            stack.extend((node[k], None) for k in reversed(keys))
        elif isinstance(node, (list, tuple)):
            stack.append((None, ("seq", node)))
            stack.extend((item, None) for item in reversed(node))
        else:
            out.append(_scalar_key(node))
    return out[0]


def _has_duplicates(values: List[Any]) -> bool:
    seen = set()
    unhashable: List[Any] = []
    for value in values:
        try:
            key = _canonical(value)
            if key in seen:
                return True
            seen.add(key)
        except TypeError:
            if any(_same(value, other) for other in unhashable):
                return True
            unhashable.append(value)
    return False


def _dependency_met(fdef: Any, scope: Mapping[str, Any]) -> bool:
    dep = fdef.depends_on
    if dep is None:
        return True
    return _same(scope.get(dep.field), dep.value)


# --------------------------------------------------------------------------- #
# Per-type checks
# --------------------------------------------------------------------------- #
def _check_string(fdef: StringField, value: Any, path: str, scope: Mapping[str, Any], out: List[Violation]) -> None:
    if not isinstance(value, str):
        out.append(Violation(path, f"{path} must be a string"))
        return
    if fdef.min_length is not None and len(value) < fdef.min_length:
        out.append(Violation(path, f"{path} must be at least {fdef.min_length} characters (minLength)"))
    if fdef.max_length is not None and len(value) > fdef.max_length:
        out.append(Violation(path, f"{path} must be at most {fdef.max_length} characters (maxLength)"))
    if fdef.pattern and not re.search(fdef.pattern, value):
        out.append(Violation(path, f"{path} does not match the required pattern (pattern)"))
    if fdef.enum_values is not None and value not in fdef.enum_values:
        out.append(Violation(path, f"{path} must be one of: {', '.join(fdef.enum_values)} (enum)"))


def _check_number(fdef: NumberField, value: Any, path: str, scope: Mapping[str, Any], out: List[Violation]) -> None:
    if not _is_number(value):
        out.append(Violation(path, f"{path} must be a number"))
        return
    if fdef.minimum is not None and value < fdef.minimum:
        out.append(Violation(path, f"{path} must be at least {_fmt(fdef.minimum)} (min)"))
    if fdef.maximum is not None and value > fdef.maximum:
        out.append(Violation(path, f"{path} must be at most {_fmt(fdef.maximum)} (max)"))
    if fdef.step is not None and not _is_multiple(value, fdef.step):
        out.append(Violation(path, f"{path} must be a multiple of {_fmt(fdef.step)} (step)"))


def _check_date(fdef: DateField, value: Any, path: str, scope: Mapping[str, Any], out: List[Violation]) -> None:
    if not _is_date(value):
        out.append(Violation(path, f"{path} must be a valid date"))


def _check_boolean(fdef: BooleanField, value: Any, path: str, scope: Mapping[str, Any], out: List[Violation]) -> None:
    if not isinstance(value, bool):
        out.append(Violation(path, f"{path} must be a boolean"))


def _check_array(fdef: ArrayField, value: Any, path: str, scope: Mapping[str, Any], out: List[Violation]) -> None:
    if not isinstance(value, (list, tuple)):
        out.append(Violation(path, f"{path} must be an array"))
        return
    if fdef.min_items is not None and len(value) < fdef.min_items:
        out.append(Violation(path, f"{path} must have at least {fdef.min_items} items (minItems)"))
    if fdef.max_items is not None and len(value) > fdef.max_items:
        out.append(Violation(path, f"{path} must have at most {fdef.max_items} items (maxItems)"))
    if fdef.unique_items and _has_duplicates(list(value)):
        out.append(Violation(path, f"{path} must have unique items (uniqueItems)"))

    item_def = fdef.items
    if item_def is None or not value or not _dependency_met(item_def, scope):
        return
    for index, item in enumerate(value):
        _check_value(item_def, item, f"{path}[{index}]", scope, out)


def _check_object(fdef: ObjectField, value: Any, path: str, scope: Mapping[str, Any], out: List[Violation]) -> None:
    if not isinstance(value, Mapping):
        out.append(Violation(path, f"{path} must be an object"))
        return
    if fdef.properties:
        _check_scope(fdef.properties, value, path, out)


_CHECKERS: Dict[type, Callable[[Any, Any, str, Mapping[str, Any], List[Violation]], None]] = {
    StringField: _check_string,
    NumberField: _check_number,
    DateField: _check_date,
    BooleanField: _check_boolean,
    ArrayField: _check_array,
    ObjectField: _check_object,
}


def _check_value(fdef: Any, value: Any, path: str, scope: Mapping[str, Any], out: List[Violation]) -> None:
    if value is None:
        if fdef.required:
            out.append(Violation(path, f"{path} is required"))
        return
    _CHECKERS[type(fdef)](fdef, value, path, scope, out)


def _check_scope(schema: Schema, payload: Mapping[str, Any], prefix: str, out: List[Violation]) -> None:
    for name, fdef in schema.items():
        if not _dependency_met(fdef, payload):
            continue
        path = f"{prefix}.{name}" if prefix else name
        _check_value(fdef, payload.get(name), path, payload, out)


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #
def validate(schema: Any, payload: Optional[Mapping[str, Any]]) -> List[Violation]:
    """
    Validate ``payload`` against ``schema`` and return every violation found.

    Args:
        schema: parsed schema, or a raw wire-shape mapping (parsed here; a
            malformed one raises ConfigurationError).
        payload: submitted dynamic field values. ``None`` is treated as empty.

    Returns:
        List of violations; empty means the payload is valid.
    """
    if isinstance(schema, Mapping) and all(isinstance(v, FIELD_MODELS) for v in schema.values()):
        parsed = schema
    else:
        parsed = parse_schema(schema)
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        return [Violation("", "dynamic fields must be an object")]
    out: List[Violation] = []
    _check_scope(parsed, payload, "", out)
    return out


def sort_violations(violations: List[Violation]) -> List[Violation]:
    return sorted(violations, key=lambda v: (v.path, v.message))


def violations_to_dict(violations: List[Violation]) -> Dict[str, str]:
    """path -> message, keeping the first message per path."""
    errors: Dict[str, str] = {}
    for v in violations:
        errors.setdefault(v.path, v.message)
    return errors


def format_violations(violations: List[Violation]) -> str:
    return ", ".join(v.message for v in violations)
