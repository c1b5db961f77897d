"""SQLAlchemy ORM models for the assistant metadata store (Postgres/SQLite)."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .types import GUID


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TimestampMixin:
    """Provides created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


# ---------------------------------------------------------------------------
# 1. owners
# ---------------------------------------------------------------------------
class Owner(TimestampMixin, Base):
    """Local identity key for one external-auth subject."""

    __tablename__ = "owners"

    id: Mapped[str] = mapped_column(GUID(), primary_key=True, default=GUID.new)
    subject_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)


# ---------------------------------------------------------------------------
# 2. assistant_bindings
# ---------------------------------------------------------------------------
class AssistantBinding(TimestampMixin, Base):
    __tablename__ = "assistant_bindings"

    id: Mapped[str] = mapped_column(GUID(), primary_key=True, default=GUID.new)
    owner_id: Mapped[str] = mapped_column(GUID(), ForeignKey("owners.id"), unique=True, nullable=False)
    assistant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    metadata_: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)


# ---------------------------------------------------------------------------
# 3. threads
# ---------------------------------------------------------------------------
class Thread(Base):
    __tablename__ = "threads"
    __table_args__ = (
        UniqueConstraint("owner_id", "thread_id", name="uq_threads_owner_thread"),
        Index("ix_threads_owner_last_message", "owner_id", "last_message_at"),
    )

    id: Mapped[str] = mapped_column(GUID(), primary_key=True, default=GUID.new)
    owner_id: Mapped[str] = mapped_column(GUID(), ForeignKey("owners.id"), nullable=False, index=True)
    thread_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="New Conversation")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    last_message_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# 4. cached_messages (derived from the provider, safe to drop)
# ---------------------------------------------------------------------------
class CachedMessage(Base):
    __tablename__ = "cached_messages"
    __table_args__ = (
        UniqueConstraint("owner_id", "message_id", name="uq_cached_messages_owner_message"),
        Index("ix_cached_messages_owner_thread", "owner_id", "thread_id"),
    )

    id: Mapped[str] = mapped_column(GUID(), primary_key=True, default=GUID.new)
    owner_id: Mapped[str] = mapped_column(GUID(), ForeignKey("owners.id"), nullable=False)
    thread_id: Mapped[str] = mapped_column(String(64), nullable=False)
    message_id: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    run_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


# ---------------------------------------------------------------------------
# 5. file_bindings
# ---------------------------------------------------------------------------
class FileBinding(Base):
    __tablename__ = "file_bindings"
    __table_args__ = (
        UniqueConstraint("owner_id", "file_id", name="uq_file_bindings_owner_file"),
    )

    id: Mapped[str] = mapped_column(GUID(), primary_key=True, default=GUID.new)
    owner_id: Mapped[str] = mapped_column(GUID(), ForeignKey("owners.id"), nullable=False, index=True)
    assistant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    file_id: Mapped[str] = mapped_column(String(64), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    content_type: Mapped[str | None] = mapped_column(String(127), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
