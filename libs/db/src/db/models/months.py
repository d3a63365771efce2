from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: fk_months
# ---------------------------


class FkMonth(Base):
    """One row per ``(user_id, month_key)``.

    The collections are stored as JSON documents (lists of serialized
    pydantic models from ``faktoora.models``). Each mutation rewrites the
    affected collection inside a single transaction, which keeps the record
    the unit of atomicity.
    """

    __tablename__ = "fk_months"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    # Format: YYYY-MM
    month_key: Mapped[str] = mapped_column(String(7), nullable=False)
    incoming_invoices: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    statements: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    bindings: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "month_key", name="uq_fk_months_user_month"),
    )


# ---------------------------
# Core: fk_user_settings
# ---------------------------


class FkUserSettings(Base):
    """One row per user. ``manual_transactions`` holds the raw entry text."""

    __tablename__ = "fk_user_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    vat_id: Mapped[str | None] = mapped_column(String, nullable=True)
    manual_transactions: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Unix seconds, set by the application clock
    updated_at: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)


# ---------------------------
# Core: fk_api_keys
# ---------------------------


class FkApiKey(Base):
    """Headless API keys. Only the HMAC of the key and its display prefix are stored."""

    __tablename__ = "fk_api_keys"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    label: Mapped[str] = mapped_column(String(80), nullable=False)
    key_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    key_prefix: Mapped[str] = mapped_column(String(32), nullable=False)
    scopes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # Unix seconds
    created_at: Mapped[float] = mapped_column(Float, nullable=False)
    last_used_at: Mapped[float | None] = mapped_column(Float, nullable=True)
    revoked_at: Mapped[float | None] = mapped_column(Float, nullable=True)


__all__ = [
    "Base",
    "FkApiKey",
    "FkMonth",
    "FkUserSettings",
]
