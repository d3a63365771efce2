"""db: shared database library (SQLAlchemy).

Public exports
--------------
- ``Base`` and ``metadata`` for schema creation
- ORM models in ``db.models.months`` (re-exported for convenience): months,
  user settings and API keys
- Engine/session helpers in ``db.client``
"""

from __future__ import annotations

from .models.months import Base, FkApiKey, FkMonth, FkUserSettings

metadata = Base.metadata

__all__ = [
    "Base",
    "metadata",
    "FkApiKey",
    "FkMonth",
    "FkUserSettings",
]
