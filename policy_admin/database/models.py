"""
SQLAlchemy models for policies and applications.
Used by postgres_real when USE_POSTGRES and DATABASE_URL are set.

`schema_definition` holds the admin-authored field schema in its wire shape
(camelCase keys) and `dynamic_fields` the values validated against it.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4
from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Policy(Base):
    __tablename__ = "policies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    policy_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    policy_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    policy_start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    policy_end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    policy_status: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    policy_amount: Mapped[float] = mapped_column(Float, nullable=False)
    policy_term: Mapped[int] = mapped_column(Integer, nullable=False)  # months

    schema_definition: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    dynamic_fields: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Application(Base):
    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    title: Mapped[str] = mapped_column(String(256), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    rules: Mapped[list] = mapped_column(JSON, default=list, nullable=False)  # list[str]
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expiry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    schema_definition: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    dynamic_fields: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
