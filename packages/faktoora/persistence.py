# ruff: noqa: I001
"""SQLAlchemy-backed record store.

Month records live in ``fk_months`` (see ``db.models.months``), one row per
``(user_id, month_key)`` with the invoice, statement and binding collections
stored as JSON. User settings live in ``fk_user_settings`` and headless API
keys in ``fk_api_keys``. Each public method runs in its own ``session_scope``
transaction; :meth:`SqlRecordStore.update` reads the row ``FOR UPDATE`` so
read-modify-write cycles on the same month are serialized by the database.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.client import session_scope
from db.models.months import FkApiKey, FkMonth, FkUserSettings
from .api_keys import ApiKeyRecord
from .logging_setup import get_logger
from .models import MonthRecord, UserSettings
from .store import Mutator, SettingsMutator, empty_month

_logger = get_logger("faktoora.persistence")

_COLLECTIONS = ("incoming_invoices", "statements", "bindings")


def _row_to_record(row: FkMonth) -> MonthRecord:
    return MonthRecord.model_validate(
        {
            "user_id": row.user_id,
            "month_key": row.month_key,
            "incoming_invoices": row.incoming_invoices or [],
            "statements": row.statements or [],
            "bindings": row.bindings or [],
        }
    )


def _record_columns(record: MonthRecord) -> dict[str, Any]:
    data = record.model_dump(mode="json")
    return {name: data[name] for name in _COLLECTIONS}


def _select_row(session: Session, user_id: str, month_key: str, *, lock: bool = False):
    stmt = select(FkMonth).where(FkMonth.user_id == user_id, FkMonth.month_key == month_key)
    if lock:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


class SqlRecordStore:
    """Record store persisting month records through SQLAlchemy."""

    def __init__(self, *, database_url: str | None = None) -> None:
        self.database_url = database_url

    def get(self, user_id: str, month_key: str) -> MonthRecord | None:
        with session_scope(database_url=self.database_url) as session:
            row = _select_row(session, user_id, month_key)
            return _row_to_record(row) if row is not None else None

    def insert(self, record: MonthRecord) -> None:
        try:
            with session_scope(database_url=self.database_url) as session:
                session.add(
                    FkMonth(
                        user_id=record.user_id,
                        month_key=record.month_key,
                        **_record_columns(record),
                    )
                )
        except IntegrityError as e:
            raise ValueError(f"month record already exists for {record.month_key}") from e

    def patch(self, user_id: str, month_key: str, **fields: Any) -> MonthRecord:
        unknown = set(fields) - set(_COLLECTIONS)
        if unknown:
            raise ValueError(f"cannot patch fields: {sorted(unknown)}")
        with session_scope(database_url=self.database_url) as session:
            row = _select_row(session, user_id, month_key, lock=True)
            if row is None:
                raise KeyError((user_id, month_key))
            merged = _row_to_record(row).model_dump()
            for name, value in fields.items():
                merged[name] = [v.model_dump() if hasattr(v, "model_dump") else v for v in value]
            record = MonthRecord.model_validate(merged)
            for name, value in _record_columns(record).items():
                setattr(row, name, value)
            return record

    def update(
        self, user_id: str, month_key: str, mutator: Mutator, *, create: bool = False
    ) -> MonthRecord | None:
        try:
            return self._update_once(user_id, month_key, mutator, create=create)
        except IntegrityError:
            # Another writer created the month between our read and insert;
            # retry once against the now-existing row.
            _logger.info("concurrent month creation for %s; retrying update", month_key)
            return self._update_once(user_id, month_key, mutator, create=create)

    def _update_once(
        self, user_id: str, month_key: str, mutator: Mutator, *, create: bool
    ) -> MonthRecord | None:
        with session_scope(database_url=self.database_url) as session:
            row = _select_row(session, user_id, month_key, lock=True)
            if row is None:
                if not create:
                    return None
                updated = mutator(empty_month(user_id, month_key))
                session.add(
                    FkMonth(user_id=user_id, month_key=month_key, **_record_columns(updated))
                )
                session.flush()
                return updated

            updated = mutator(_row_to_record(row))
            for name, value in _record_columns(updated).items():
                setattr(row, name, value)
            return updated

    # ---- user settings ------------------------------------------------------

    def get_settings(self, user_id: str) -> UserSettings | None:
        with session_scope(database_url=self.database_url) as session:
            row = _select_settings_row(session, user_id)
            return _row_to_settings(row) if row is not None else None

    def update_settings(self, user_id: str, mutator: SettingsMutator) -> UserSettings:
        try:
            return self._update_settings_once(user_id, mutator)
        except IntegrityError:
            _logger.info("concurrent settings creation for %s; retrying update", user_id)
            return self._update_settings_once(user_id, mutator)

    def _update_settings_once(self, user_id: str, mutator: SettingsMutator) -> UserSettings:
        with session_scope(database_url=self.database_url) as session:
            row = _select_settings_row(session, user_id, lock=True)
            if row is None:
                updated = mutator(UserSettings(user_id=user_id))
                session.add(FkUserSettings(**updated.model_dump()))
                session.flush()
                return updated
            updated = mutator(_row_to_settings(row))
            row.vat_id = updated.vat_id
            row.manual_transactions = updated.manual_transactions
            row.updated_at = updated.updated_at
            return updated


def _row_to_settings(row: FkUserSettings) -> UserSettings:
    return UserSettings(
        user_id=row.user_id,
        vat_id=row.vat_id,
        manual_transactions=row.manual_transactions or "",
        updated_at=row.updated_at,
    )


def _select_settings_row(session: Session, user_id: str, *, lock: bool = False):
    stmt = select(FkUserSettings).where(FkUserSettings.user_id == user_id)
    if lock:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


# ---- API keys -------------------------------------------------------------------


def _row_to_api_key(row: FkApiKey) -> ApiKeyRecord:
    return ApiKeyRecord(
        key_id=row.id,
        user_id=row.user_id,
        key_hash=row.key_hash,
        scopes=tuple(row.scopes or ()),
        label=row.label,
        key_prefix=row.key_prefix,
        created_at=row.created_at,
        revoked_at=row.revoked_at,
        last_used_at=row.last_used_at,
    )


class SqlApiKeyStore:
    """API key store persisting to ``fk_api_keys``."""

    def __init__(
        self, *, database_url: str | None = None, clock: Callable[[], float] = time.time
    ) -> None:
        self.database_url = database_url
        self._clock = clock

    def add(self, record: ApiKeyRecord) -> None:
        try:
            with session_scope(database_url=self.database_url) as session:
                session.add(
                    FkApiKey(
                        id=record.key_id,
                        user_id=record.user_id,
                        label=record.label,
                        key_hash=record.key_hash,
                        key_prefix=record.key_prefix,
                        scopes=list(record.scopes),
                        created_at=record.created_at,
                        last_used_at=record.last_used_at,
                        revoked_at=record.revoked_at,
                    )
                )
        except IntegrityError as e:
            raise ValueError("API key hash already exists") from e

    def get(self, key_id: str) -> ApiKeyRecord | None:
        with session_scope(database_url=self.database_url) as session:
            row = session.get(FkApiKey, key_id)
            return _row_to_api_key(row) if row is not None else None

    def get_by_hash(self, key_hash: str) -> ApiKeyRecord | None:
        with session_scope(database_url=self.database_url) as session:
            row = session.execute(
                select(FkApiKey).where(FkApiKey.key_hash == key_hash)
            ).scalar_one_or_none()
            return _row_to_api_key(row) if row is not None else None

    def list_for_user(self, user_id: str) -> list[ApiKeyRecord]:
        with session_scope(database_url=self.database_url) as session:
            rows = session.execute(select(FkApiKey).where(FkApiKey.user_id == user_id)).scalars()
            return [_row_to_api_key(row) for row in rows]

    def revoke(self, key_id: str, revoked_at: float) -> None:
        with session_scope(database_url=self.database_url) as session:
            row = session.get(FkApiKey, key_id)
            if row is not None:
                row.revoked_at = revoked_at

    def touch(self, key_id: str) -> None:
        with session_scope(database_url=self.database_url) as session:
            row = session.get(FkApiKey, key_id)
            if row is not None:
                row.last_used_at = self._clock()


__all__ = ["SqlApiKeyStore", "SqlRecordStore"]
