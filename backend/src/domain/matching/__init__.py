"""Matching domain layer - value types, error taxonomy and collaborator ports"""

from .models import (
    CompatibilityLevel,
    CompatibilityScore,
    GenderIdentity,
    MatchRecord,
    MatchStatus,
    Profile,
    UserPreferences,
    round_half_up,
    validate_score,
)
from .errors import (
    MatchingError,
    ValidationError,
    NotFoundError,
    PersistenceError,
    OperationCancelledError,
)
from .cancellation import CancellationToken, check_cancelled
from .ports import (
    ProfileStorePort,
    MatchHistoryStorePort,
    PreferenceStorePort,
    IntelligenceOraclePort,
    OracleError,
    OracleTimeoutError,
    OracleServiceError,
    OracleInvalidResponseError,
)

__all__ = [
    "CompatibilityLevel",
    "CompatibilityScore",
    "GenderIdentity",
    "MatchRecord",
    "MatchStatus",
    "Profile",
    "UserPreferences",
    "round_half_up",
    "validate_score",
    "MatchingError",
    "ValidationError",
    "NotFoundError",
    "PersistenceError",
    "OperationCancelledError",
    "CancellationToken",
    "check_cancelled",
    "ProfileStorePort",
    "MatchHistoryStorePort",
    "PreferenceStorePort",
    "IntelligenceOraclePort",
    "OracleError",
    "OracleTimeoutError",
    "OracleServiceError",
    "OracleInvalidResponseError",
]
