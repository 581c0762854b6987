"""Shared persistence logic for records that carry a dynamic field schema.

Every write goes through the same sequence: parse the schema, validate the
dynamic fields against it, then persist. Nothing is written when validation
fails, and all violations are reported together.

Subclasses bind the record-specific storage calls and serialisation.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from policy_admin.database.filters import RecordFilter, as_utc
from policy_admin.schema import (
    NotFoundError,
    Schema,
    ValidationFailure,
    Violation,
    apply_defaults,
    dump_schema,
    parse_schema,
    validate,
)
from policy_admin.utils.config_loader import AppConfig

logger = logging.getLogger(__name__)

DYNAMIC_PREFIX = "dynamic."


def iso(value: Optional[datetime]) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


def parse_date_param(name: str, raw: Any, violations: List[Violation]) -> Optional[datetime]:
    if raw is None or str(raw).strip() == "":
        return None
    if isinstance(raw, datetime):
        return as_utc(raw)
    s = str(raw).strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(s))
    except ValueError:
        violations.append(Violation(name, f"{name} must be a valid date"))
        return None


def parse_bool_param(name: str, raw: Any, violations: List[Violation]) -> Optional[bool]:
    if raw is None or isinstance(raw, bool):
        return raw
    s = str(raw).strip().lower()
    if s in ("true", "1", "yes"):
        return True
    if s in ("false", "0", "no"):
        return False
    violations.append(Violation(name, f"{name} must be true/false"))
    return None


class DynamicRecordController:
    """Create/read/update/delete/list for one record kind."""

    record_name = "Record"
    collection_name = "records"
    date_fields: Tuple[str, ...] = ()
    # scalar attributes an update may clear with null
    nullable_fields: Tuple[str, ...] = ()

    def __init__(self, db, config: Optional[AppConfig] = None):
        self.db = db
        self.config = config or AppConfig()

    # ------------------------------------------------------------------ #
    # Storage hooks
    # ------------------------------------------------------------------ #
    def _create_row(self, data: Dict[str, Any]):
        raise NotImplementedError

    def _get_row(self, record_id: str):
        raise NotImplementedError

    def _update_row(self, record_id: str, updates: Dict[str, Any]):
        raise NotImplementedError

    def _delete_row(self, record_id: str) -> bool:
        raise NotImplementedError

    def _list_rows(self, filters: RecordFilter, offset: int, limit: int):
        raise NotImplementedError

    def _ensure_unique(self, data: Dict[str, Any], record_id: Optional[str] = None) -> None:
        return None

    def _build_filter(self, query: Dict[str, Any], violations: List[Violation]) -> RecordFilter:
        return RecordFilter()

    def _to_dict(self, row) -> Dict[str, Any]:
        raise NotImplementedError

    # ------------------------------------------------------------------ #
    # Schema / payload helpers
    # ------------------------------------------------------------------ #
    def _parse_schema(self, raw: Any) -> Optional[Schema]:
        if raw is None:
            return None
        return parse_schema(raw, max_depth=self.config.validation.max_schema_depth)

    @staticmethod
    def _as_payload(raw: Any) -> Optional[Dict[str, Any]]:
        if raw is None:
            return None
        if not isinstance(raw, Mapping):
            raise ValidationFailure([Violation("dynamicFields", "dynamicFields must be an object")])
        return copy.deepcopy(dict(raw))

    def _raise_if_invalid(self, schema: Schema, payload: Dict[str, Any], record_id: Optional[str] = None) -> None:
        violations = validate(schema, payload)
        if violations:
            logger.warning(
                "Rejected %s %s: %d dynamic field violation(s)",
                self.record_name,
                record_id or "<new>",
                len(violations),
            )
            raise ValidationFailure(violations)

    def _normalize_dates(self, data: Dict[str, Any]) -> Dict[str, Any]:
        for name in self.date_fields:
            if isinstance(data.get(name), datetime):
                data[name] = as_utc(data[name])
        return data

    def _require(self, record_id: str):
        row = self._get_row(record_id)
        if not row:
            raise NotFoundError(f"{self.record_name} not found")
        return row

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #
    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Persist a new record. When both a schema and dynamic fields are
        given, schema defaults are filled in and the result is validated.
        """
        data = dict(data)
        schema = self._parse_schema(data.get("schema_definition"))
        payload = self._as_payload(data.get("dynamic_fields"))

        if schema is not None and payload is not None:
            payload = apply_defaults(schema, payload)
            self._raise_if_invalid(schema, payload)

        data["schema_definition"] = dump_schema(schema) if schema is not None else None
        data["dynamic_fields"] = payload
        self._normalize_dates(data)
        self._ensure_unique(data)

        row = self._create_row(data)
        logger.info("Created %s %s", self.record_name, row.id)
        return self._to_dict(row)

    def get(self, record_id: str) -> Dict[str, Any]:
        return self._to_dict(self._require(record_id))

    def update(self, record_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Partial update. ``schema_definition`` and ``dynamic_fields`` are merged
        key by key over the stored values and the merged pair is validated.
        """
        row = self._require(record_id)
        updates = {
            k: v for k, v in dict(updates).items() if k != "id" and (v is not None or k in self.nullable_fields)
        }
        schema_patch = updates.pop("schema_definition", None)
        payload_patch = self._as_payload(updates.pop("dynamic_fields", None))

        merged_schema_raw = row.schema_definition
        if schema_patch is not None:
            merged_schema_raw = {**(row.schema_definition or {}), **dict(schema_patch)}
        merged_payload = row.dynamic_fields
        if payload_patch is not None:
            merged_payload = {**(row.dynamic_fields or {}), **payload_patch}

        schema = self._parse_schema(merged_schema_raw)
        touched = schema_patch is not None or payload_patch is not None
        if touched and schema is not None and merged_payload is not None:
            self._raise_if_invalid(schema, merged_payload, record_id)

        if schema_patch is not None:
            updates["schema_definition"] = dump_schema(schema)
        if payload_patch is not None:
            updates["dynamic_fields"] = merged_payload
        self._normalize_dates(updates)
        self._ensure_unique(updates, record_id)

        updated = self._update_row(record_id, updates)
        if not updated:
            raise NotFoundError(f"{self.record_name} not found")
        logger.info("Updated %s %s (%s)", self.record_name, record_id, ", ".join(sorted(updates)) or "no changes")
        return self._to_dict(updated)

    def update_schema(self, record_id: str, schema_definition: Any) -> Dict[str, Any]:
        """
        Replace the schema wholesale.

        Stored dynamic fields are left as they are unless
        ``validation.revalidate_on_schema_change`` is enabled, in which case
        they must satisfy the new schema first.
        """
        row = self._require(record_id)
        schema = self._parse_schema(schema_definition)
        if self.config.validation.revalidate_on_schema_change and row.dynamic_fields is not None:
            self._raise_if_invalid(schema, row.dynamic_fields, record_id)

        updated = self._update_row(record_id, {"schema_definition": dump_schema(schema)})
        if not updated:
            raise NotFoundError(f"{self.record_name} not found")
        logger.info("Replaced schema of %s %s (%d fields)", self.record_name, record_id, len(schema))
        return self._to_dict(updated)

    def update_dynamic_fields(self, record_id: str, dynamic_fields: Any) -> Dict[str, Any]:
        """Replace the dynamic fields wholesale after validating them against the stored schema."""
        row = self._require(record_id)
        payload = self._as_payload(dynamic_fields)
        if payload is None:
            payload = {}
        schema = self._parse_schema(row.schema_definition)
        if schema is not None:
            self._raise_if_invalid(schema, payload, record_id)

        updated = self._update_row(record_id, {"dynamic_fields": payload})
        if not updated:
            raise NotFoundError(f"{self.record_name} not found")
        return self._to_dict(updated)

    def delete(self, record_id: str) -> bool:
        if not self._delete_row(record_id):
            raise NotFoundError(f"{self.record_name} not found")
        logger.info("Deleted %s %s", self.record_name, record_id)
        return True

    def list(self, query: Optional[Dict[str, Any]] = None, page: Any = 1, limit: Any = None) -> Dict[str, Any]:
        """
        Paginated listing, newest first.

        ``query`` holds flat filters plus ``dynamic.<name>=<value>`` entries
        matched against the record's dynamic fields.
        """
        query = dict(query or {})
        pagination = self.config.pagination
        try:
            page = max(1, int(page or 1))
        except (TypeError, ValueError):
            page = 1
        try:
            limit = int(limit) if limit not in (None, "") else pagination.default_limit
        except (TypeError, ValueError):
            limit = pagination.default_limit
        limit = min(max(1, limit), pagination.max_limit)

        violations: List[Violation] = []
        filters = self._build_filter(query, violations)
        if violations:
            raise ValidationFailure(violations)
        filters.dynamic.update(
            {k[len(DYNAMIC_PREFIX):]: str(v) for k, v in query.items() if k.startswith(DYNAMIC_PREFIX) and len(k) > len(DYNAMIC_PREFIX)}
        )

        rows, total = self._list_rows(filters, (page - 1) * limit, limit)
        return {
            self.collection_name: [self._to_dict(r) for r in rows],
            "total": total,
            "page": page,
            "limit": limit,
        }
