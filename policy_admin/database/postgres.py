"""
Lightweight in-memory PostgresDB replacement for local development.

This provides the same interface as `postgres_real.PostgresDB` so the API and
controllers can run without a real database. It is NOT intended for
production use.
"""

from __future__ import annotations

import copy
import itertools
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .filters import RecordFilter


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Policy:
    id: str
    policy_number: str
    policy_type: str
    title: str
    policy_start_date: datetime
    policy_end_date: datetime
    policy_status: str
    policy_amount: float
    policy_term: int
    description: Optional[str] = None
    schema_definition: Optional[Dict[str, Any]] = None
    dynamic_fields: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass
class Application:
    id: str
    title: str
    description: str
    expiry_date: datetime
    created_by: str
    rules: List[str] = field(default_factory=list)
    is_active: bool = True
    schema_definition: Optional[Dict[str, Any]] = None
    dynamic_fields: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


class PostgresDB:
    """
    In-memory stand-in for the Postgres-backed data access layer.

    Records are deep-copied on the way in and out so callers never share
    mutable JSON values with the store.
    """

    backend_name = "memory"

    def __init__(self) -> None:
        self._policies: Dict[str, Policy] = {}
        self._applications: Dict[str, Application] = {}
        # insertion sequence, breaks created_at ties when listing
        self._seq = itertools.count()
        self._order: Dict[str, int] = {}

    # ------------------------------------------------------------------ #
    # Schema / lifecycle
    # ------------------------------------------------------------------ #
    def create_tables(self) -> None:
        """
        No-op for the in-memory implementation. Kept for compatibility
        with the startup hook in `policy_admin/api/main.py`.
        """
        return None

    def ping(self) -> bool:
        return True

    # ------------------------------------------------------------------ #
    # Shared helpers
    # ------------------------------------------------------------------ #
    def _insert(self, table: Dict[str, Any], record: Any) -> Any:
        table[record.id] = record
        self._order[record.id] = next(self._seq)
        return copy.deepcopy(record)

    def _update(self, table: Dict[str, Any], record_id: str, updates: Dict[str, Any]) -> Optional[Any]:
        record = table.get(str(record_id))
        if not record:
            return None
        for k, v in (updates or {}).items():
            if hasattr(record, k):
                setattr(record, k, copy.deepcopy(v))
        record.updated_at = _utcnow()
        return copy.deepcopy(record)

    def _delete(self, table: Dict[str, Any], record_id: str) -> bool:
        if table.pop(str(record_id), None) is None:
            return False
        self._order.pop(str(record_id), None)
        return True

    def _list(self, table: Dict[str, Any], filters: Optional[RecordFilter], offset: int, limit: int) -> Tuple[List[Any], int]:
        filters = filters or RecordFilter()
        rows = [r for r in table.values() if filters.matches(r)]
        rows.sort(key=lambda r: (r.created_at, self._order.get(r.id, 0)), reverse=True)
        return [copy.deepcopy(r) for r in rows[offset:offset + limit]], len(rows)

    # ------------------------------------------------------------------ #
    # Policies
    # ------------------------------------------------------------------ #
    def create_policy(self, data: Dict[str, Any]) -> Policy:
        now = _utcnow()
        policy = Policy(
            id=str(uuid.uuid4()),
            policy_number=data["policy_number"],
            policy_type=data["policy_type"],
            title=data["title"],
            description=data.get("description"),
            policy_start_date=data["policy_start_date"],
            policy_end_date=data["policy_end_date"],
            policy_status=data["policy_status"],
            policy_amount=data["policy_amount"],
            policy_term=data["policy_term"],
            schema_definition=copy.deepcopy(data.get("schema_definition")),
            dynamic_fields=copy.deepcopy(data.get("dynamic_fields")),
            created_at=now,
            updated_at=now,
        )
        return self._insert(self._policies, policy)

    def get_policy(self, policy_id: str) -> Optional[Policy]:
        policy = self._policies.get(str(policy_id))
        return copy.deepcopy(policy) if policy else None

    def get_policy_by_number(self, policy_number: str) -> Optional[Policy]:
        for policy in self._policies.values():
            if policy.policy_number == policy_number:
                return copy.deepcopy(policy)
        return None

    def update_policy(self, policy_id: str, updates: Dict[str, Any]) -> Optional[Policy]:
        return self._update(self._policies, policy_id, updates)

    def delete_policy(self, policy_id: str) -> bool:
        return self._delete(self._policies, policy_id)

    def list_policies(self, filters: Optional[RecordFilter] = None, offset: int = 0, limit: int = 10) -> Tuple[List[Policy], int]:
        return self._list(self._policies, filters, offset, limit)

    # ------------------------------------------------------------------ #
    # Applications
    # ------------------------------------------------------------------ #
    def create_application(self, data: Dict[str, Any]) -> Application:
        now = _utcnow()
        app = Application(
            id=str(uuid.uuid4()),
            title=data["title"],
            description=data["description"],
            rules=list(data.get("rules") or []),
            is_active=data.get("is_active", True),
            expiry_date=data["expiry_date"],
            created_by=data["created_by"],
            schema_definition=copy.deepcopy(data.get("schema_definition")),
            dynamic_fields=copy.deepcopy(data.get("dynamic_fields")),
            created_at=now,
            updated_at=now,
        )
        return self._insert(self._applications, app)

    def get_application(self, app_id: str) -> Optional[Application]:
        app = self._applications.get(str(app_id))
        return copy.deepcopy(app) if app else None

    def get_application_by_title(self, title: str) -> Optional[Application]:
        for app in self._applications.values():
            if app.title == title:
                return copy.deepcopy(app)
        return None

    def update_application(self, app_id: str, updates: Dict[str, Any]) -> Optional[Application]:
        return self._update(self._applications, app_id, updates)

    def delete_application(self, app_id: str) -> bool:
        return self._delete(self._applications, app_id)

    def list_applications(self, filters: Optional[RecordFilter] = None, offset: int = 0, limit: int = 10) -> Tuple[List[Application], int]:
        return self._list(self._applications, filters, offset, limit)
