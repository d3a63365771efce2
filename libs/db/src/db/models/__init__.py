"""SQLAlchemy models registry for the faktoora record store."""

from .months import Base, FkApiKey, FkMonth, FkUserSettings

__all__ = [
    "Base",
    "FkApiKey",
    "FkMonth",
    "FkUserSettings",
]
