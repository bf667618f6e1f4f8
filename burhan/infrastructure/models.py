from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    pass


class RubricVersionORM(Base):
    """Each save of the edited rubric appends a row; the highest id is live."""

    __tablename__ = "rubric_versions"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    # version numbers are never reused, even after every row is deleted
    __table_args__ = {"sqlite_autoincrement": True}


class AssessmentRecordORM(Base):
    __tablename__ = "assessment_records"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    # project info, carried through unscored
    user_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    project_name: Mapped[str] = mapped_column(String(255), nullable=False)
    organization: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(16), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )
    score: Mapped[float] = mapped_column(Float, nullable=False)
    max_score: Mapped[float] = mapped_column(Float, nullable=False)
    classification: Mapped[str] = mapped_column(String(32), nullable=False)
    percentage: Mapped[int] = mapped_column(Integer, nullable=False)

    detailed_answers: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    rubric_snapshot: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    rubric_version: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_record_percentage"),
        CheckConstraint("score >= 0 AND score <= max_score", name="ck_record_score"),
    )
