"""SQLAlchemy store adapters for the matching ports"""

from .errors import translate_database_errors
from .match_history_repository import SqlAlchemyMatchHistoryStore
from .preference_repository import SqlAlchemyPreferenceStore
from .profile_repository import SqlAlchemyProfileStore

__all__ = [
    "SqlAlchemyMatchHistoryStore",
    "SqlAlchemyPreferenceStore",
    "SqlAlchemyProfileStore",
    "translate_database_errors",
]
