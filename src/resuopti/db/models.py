from __future__ import annotations

from datetime import date

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from resuopti.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)


class TargetPosition(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "target_positions"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_target_positions_user_name"),)

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class ResumeVersion(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "resume_versions"
    __table_args__ = (CheckConstraint("kind in ('online', 'file')", name="ck_resume_versions_kind"),)

    target_position_id: Mapped[str] = mapped_column(
        ForeignKey("target_positions.id", ondelete="RESTRICT"), index=True
    )
    kind: Mapped[str] = mapped_column(String(10), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)


class ResumeMetadata(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "resume_metadata"

    resume_id: Mapped[str] = mapped_column(
        ForeignKey("resume_versions.id", ondelete="CASCADE"), unique=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)


class ApplicationRecord(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "application_records"

    resume_id: Mapped[str] = mapped_column(
        ForeignKey("resume_versions.id", ondelete="CASCADE"), index=True
    )
    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    position_title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    apply_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(40), default="Applied", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
