"""DB helpers for tests: bootstrap a temporary SQLite record store."""

from __future__ import annotations

import os
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from sqlalchemy import text as sql_text


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine)
    _assert_schema_in_sync(url)

    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def count_month_rows(database_url: str) -> int:
    with session_scope(database_url=database_url) as session:
        return int(session.execute(sql_text("SELECT COUNT(*) FROM fk_months")).scalar_one())


def _assert_schema_in_sync(database_url: str) -> None:
    """Quick sanity check: ORM column sets match the SQLite table column sets."""

    for table in Base.metadata.sorted_tables:
        expected = {c.name for c in table.columns}
        with session_scope(database_url=database_url) as session:
            rows = session.execute(sql_text(f"PRAGMA table_info('{table.name}')")).fetchall()
            got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
        missing = expected - got
        extra = got - expected
        assert not missing and not extra, (
            f"{table.name} schema drift: missing={missing or '∅'}, extra={extra or '∅'}"
        )
