"""
Backend-neutral record filter used by both PostgresDB implementations.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def dynamic_value_matches(stored: Any, expected: str) -> bool:
    """
    Query-string values are always strings; a stored value matches when it is
    that string, or when its JSON rendering is (``true``, ``10``, ``2.5``).
    """
    if stored is None:
        return False
    if isinstance(stored, str):
        return stored == expected
    try:
        return json.dumps(stored) == expected
    except (TypeError, ValueError):
        return False


@dataclass
class RecordFilter:
    """
    Filters on record attributes (snake_case names).

    exact:    attribute == value
    contains: case-insensitive substring on a text attribute
    ranges:   attribute between (lower, upper), either bound optional
    dynamic:  dynamic_fields[name] equality, see `dynamic_value_matches`
    """

    exact: Dict[str, Any] = field(default_factory=dict)
    contains: Dict[str, str] = field(default_factory=dict)
    ranges: Dict[str, Tuple[Optional[datetime], Optional[datetime]]] = field(default_factory=dict)
    dynamic: Dict[str, str] = field(default_factory=dict)

    def matches(self, record: Any) -> bool:
        for attr, value in self.exact.items():
            if getattr(record, attr, None) != value:
                return False
        for attr, needle in self.contains.items():
            hay = getattr(record, attr, None) or ""
            if needle.lower() not in str(hay).lower():
                return False
        for attr, (lower, upper) in self.ranges.items():
            current = as_utc(getattr(record, attr, None))
            if current is None:
                return False
            if lower is not None and current < as_utc(lower):
                return False
            if upper is not None and current > as_utc(upper):
                return False
        payload = getattr(record, "dynamic_fields", None) or {}
        for name, expected in self.dynamic.items():
            if not dynamic_value_matches(payload.get(name), expected):
                return False
        return True
