"""
Real Postgres-backed DB for production when USE_POSTGRES and DATABASE_URL are set.
Implements the same interface as policy_admin.database.postgres (in-memory stub).
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type
from uuid import uuid4

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker

from policy_admin.database.filters import RecordFilter
from policy_admin.database.models import Application, Base, Policy


def _normalize_connection_string(s: str) -> str:
    """Strip common mistakes: 'psql \'...\'', extra quotes, whitespace."""
    s = s.strip()
    if re.match(r"^psql\s+", s, re.IGNORECASE):
        s = re.sub(r"^psql\s+", "", s, flags=re.IGNORECASE).strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ("'", '"'):
        s = s[1:-1].strip()
    return s


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PostgresDB:
    """
    Postgres data access using SQLAlchemy. Use when DATABASE_URL is set and
    USE_POSTGRES=true. Any SQLAlchemy URL works; tests run it on SQLite.
    """

    backend_name = "postgres"

    def __init__(self, connection_string: str) -> None:
        connection_string = _normalize_connection_string(connection_string)
        if connection_string.startswith("sqlite"):
            self.engine = create_engine(connection_string)
        else:
            self.engine = create_engine(connection_string, pool_pre_ping=True, pool_size=5, max_overflow=10)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        return True

    @contextmanager
    def _session(self) -> Session:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    # ------------------------------------------------------------------ #
    # Shared helpers
    # ------------------------------------------------------------------ #
    def _get(self, model: Type[Any], record_id: str) -> Optional[Any]:
        with self._session() as s:
            stmt = select(model).where(model.id == str(record_id))
            return s.execute(stmt).scalar_one_or_none()

    def _get_by(self, model: Type[Any], column: Any, value: Any) -> Optional[Any]:
        with self._session() as s:
            stmt = select(model).where(column == value)
            return s.execute(stmt).scalar_one_or_none()

    def _update(self, model: Type[Any], record_id: str, updates: Dict[str, Any]) -> Optional[Any]:
        with self._session() as s:
            stmt = select(model).where(model.id == str(record_id))
            row = s.execute(stmt).scalar_one_or_none()
            if not row:
                return None
            for k, v in (updates or {}).items():
                if hasattr(row, k):
                    setattr(row, k, v)
            row.updated_at = _utcnow()
            s.add(row)
            s.flush()
            s.refresh(row)
            return row

    def _delete(self, model: Type[Any], record_id: str) -> bool:
        with self._session() as s:
            stmt = select(model).where(model.id == str(record_id))
            row = s.execute(stmt).scalar_one_or_none()
            if not row:
                return False
            s.delete(row)
            return True

    @staticmethod
    def _conditions(model: Type[Any], filters: RecordFilter) -> List[Any]:
        conds: List[Any] = []
        for attr, value in filters.exact.items():
            conds.append(getattr(model, attr) == value)
        for attr, needle in filters.contains.items():
            conds.append(getattr(model, attr).ilike(f"%{needle}%"))
        for attr, (lower, upper) in filters.ranges.items():
            col = getattr(model, attr)
            if lower is not None:
                conds.append(col >= lower)
            if upper is not None:
                conds.append(col <= upper)
        for name, expected in filters.dynamic.items():
            conds.append(model.dynamic_fields[name].as_string() == expected)
        return conds

    def _list(self, model: Type[Any], filters: Optional[RecordFilter], offset: int, limit: int) -> Tuple[List[Any], int]:
        conds = self._conditions(model, filters or RecordFilter())
        with self._session() as s:
            total = s.execute(select(func.count()).select_from(model).where(*conds)).scalar_one()
            stmt = (
                select(model)
                .where(*conds)
                .order_by(model.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(s.execute(stmt).scalars().all()), int(total)

    # ------------------------------------------------------------------ #
    # Policies
    # ------------------------------------------------------------------ #
    def create_policy(self, data: Dict[str, Any]) -> Policy:
        with self._session() as s:
            now = _utcnow()
            policy = Policy(
                id=str(uuid4()),
                policy_number=data["policy_number"],
                policy_type=data["policy_type"],
                title=data["title"],
                description=data.get("description"),
                policy_start_date=data["policy_start_date"],
                policy_end_date=data["policy_end_date"],
                policy_status=data["policy_status"],
                policy_amount=float(data["policy_amount"]),
                policy_term=int(data["policy_term"]),
                schema_definition=data.get("schema_definition"),
                dynamic_fields=data.get("dynamic_fields"),
                created_at=now,
                updated_at=now,
            )
            s.add(policy)
            s.flush()
            s.refresh(policy)
            return policy

    def get_policy(self, policy_id: str) -> Optional[Policy]:
        return self._get(Policy, policy_id)

    def get_policy_by_number(self, policy_number: str) -> Optional[Policy]:
        return self._get_by(Policy, Policy.policy_number, policy_number)

    def update_policy(self, policy_id: str, updates: Dict[str, Any]) -> Optional[Policy]:
        return self._update(Policy, policy_id, updates)

    def delete_policy(self, policy_id: str) -> bool:
        return self._delete(Policy, policy_id)

    def list_policies(self, filters: Optional[RecordFilter] = None, offset: int = 0, limit: int = 10) -> Tuple[List[Policy], int]:
        return self._list(Policy, filters, offset, limit)

    # ------------------------------------------------------------------ #
    # Applications
    # ------------------------------------------------------------------ #
    def create_application(self, data: Dict[str, Any]) -> Application:
        with self._session() as s:
            now = _utcnow()
            app = Application(
                id=str(uuid4()),
                title=data["title"],
                description=data["description"],
                rules=list(data.get("rules") or []),
                is_active=data.get("is_active", True),
                expiry_date=data["expiry_date"],
                created_by=data["created_by"],
                schema_definition=data.get("schema_definition"),
                dynamic_fields=data.get("dynamic_fields"),
                created_at=now,
                updated_at=now,
            )
            s.add(app)
            s.flush()
            s.refresh(app)
            return app

    def get_application(self, app_id: str) -> Optional[Application]:
        return self._get(Application, app_id)

    def get_application_by_title(self, title: str) -> Optional[Application]:
        return self._get_by(Application, Application.title, title)

    def update_application(self, app_id: str, updates: Dict[str, Any]) -> Optional[Application]:
        return self._update(Application, app_id, updates)

    def delete_application(self, app_id: str) -> bool:
        return self._delete(Application, app_id)

    def list_applications(self, filters: Optional[RecordFilter] = None, offset: int = 0, limit: int = 10) -> Tuple[List[Application], int]:
        return self._list(Application, filters, offset, limit)
