from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from refcheck.db.base import Base, TimestampMixin


class StorageEntry(TimestampMixin, Base):
    __tablename__ = "storage_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, default="", nullable=False)


class ResponseTokenRow(Base):
    __tablename__ = "response_tokens"

    token: Mapped[str] = mapped_column(String(128), primary_key=True)
    request_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    respondent_email: Mapped[str] = mapped_column(String(255), nullable=False)
    respondent_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reminders_sent: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_reminder_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class RejectionRow(Base):
    __tablename__ = "rejection_records"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    token: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    request_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    respondent_email: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[str] = mapped_column(Text, default="", nullable=False)
    rejected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ip_address: Mapped[str] = mapped_column(String(64), default="", nullable=False)


class ReferenceRequestRow(TimestampMixin, Base):
    __tablename__ = "reference_requests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    talent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    talent_email: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="pending", nullable=False)
    form_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)


class ReferenceResponseRow(Base):
    __tablename__ = "reference_responses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    request_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    respondent_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    respondent_email: Mapped[str] = mapped_column(String(255), nullable=False)
    answers_json: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    additional_comments: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
