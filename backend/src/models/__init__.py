"""SQLAlchemy models for the matching engine"""

from .base import Base, PortableJSONB
from .profile import ProfileModel
from .match_record import MatchRecordModel
from .user_preferences import UserPreferencesModel

__all__ = [
    "Base",
    "PortableJSONB",
    "ProfileModel",
    "MatchRecordModel",
    "UserPreferencesModel",
]
