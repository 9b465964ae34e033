"""Matching domain models.

These are the domain models (not the database models). Profiles are owned by
the profile subsystem and read-only here; match records are created by the
surrounding application and only status-transitioned; user preferences are
mutated exclusively by the preference learner.
"""

import copy
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional
from uuid import UUID, uuid4

from .errors import ValidationError


SCORE_MIN = 0
SCORE_MAX = 100

# Overall score weights (interest, personality, lifestyle, value)
INTEREST_WEIGHT = Decimal("0.30")
PERSONALITY_WEIGHT = Decimal("0.30")
LIFESTYLE_WEIGHT = Decimal("0.25")
VALUE_WEIGHT = Decimal("0.15")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(value) -> int:
    """Round to the nearest integer, halves away from zero.

    Unlike the built-in round(), 84.5 becomes 85.

    Example:
        >>> round_half_up(84.5)
        85
        >>> round_half_up(Decimal("2.4"))
        2
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_score(score, name: str = "score") -> int:
    """Validate an integer score lies in [0, 100].

    Raises:
        ValidationError: If score is not an int or is out of range
    """
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError(f"{name} must be an integer, got {type(score).__name__}")
    if score < SCORE_MIN or score > SCORE_MAX:
        raise ValidationError(f"{name} must be between {SCORE_MIN} and {SCORE_MAX}, got {score}")
    return score


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


def normalize_tags(tags: Optional[Iterable[str]]) -> FrozenSet[str]:
    if not tags:
        return frozenset()
    return frozenset(t for t in (normalize_tag(tag) for tag in tags) if t)


class GenderIdentity(str, Enum):
    """Gender identity values used for reciprocity checks"""
    MALE = "male"
    FEMALE = "female"
    NON_BINARY = "non_binary"
    OTHER = "other"


class MatchStatus(str, Enum):
    """Match record status.

    State flow:
    PENDING → ACCEPTED or REJECTED (both terminal)
    """
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class CompatibilityLevel(str, Enum):
    """Human-readable band for an overall score"""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    LOW = "low"

    @classmethod
    def for_score(cls, score: int) -> "CompatibilityLevel":
        if score >= 80:
            return cls.EXCELLENT
        if score >= 60:
            return cls.GOOD
        if score >= 40:
            return cls.FAIR
        return cls.LOW


@dataclass
class Profile:
    """Dating profile as seen by the matching engine.

    Attributes:
        id: Profile owner's user UUID
        interest_tags: Normalized (trimmed, lower-cased) interest tags
        bio: Free-text bio
        location: Free-text location (compared case-insensitively)
        gender_identity: Profile owner's gender identity
        accepted_genders: Genders the owner is interested in
        age: Owner's age in years (None if unknown)
        min_age: Youngest acceptable partner age (None = no bound)
        max_age: Oldest acceptable partner age (None = no bound)
        display_name: Name shown in ranking results
        occupation: Free-text occupation
    """
    id: UUID
    interest_tags: FrozenSet[str] = field(default_factory=frozenset)
    bio: Optional[str] = None
    location: Optional[str] = None
    gender_identity: GenderIdentity = GenderIdentity.OTHER
    accepted_genders: FrozenSet[GenderIdentity] = field(default_factory=frozenset)
    age: Optional[int] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    display_name: Optional[str] = None
    occupation: Optional[str] = None

    def __post_init__(self):
        if self.id is None:
            raise ValidationError("Profile id is required")
        self.interest_tags = normalize_tags(self.interest_tags)
        self.gender_identity = GenderIdentity(self.gender_identity)
        self.accepted_genders = frozenset(GenderIdentity(g) for g in self.accepted_genders or ())
        for name in ("age", "min_age", "max_age"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValidationError(f"{name} cannot be negative")
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValidationError("min_age cannot be greater than max_age")

    @staticmethod
    def parse_interests(interests: Optional[str]) -> FrozenSet[str]:
        """Parse a comma-separated interest string into normalized tags.

        Example:
            >>> sorted(Profile.parse_interests("Hiking, cooking ,,"))
            ['cooking', 'hiking']
        """
        if not interests:
            return frozenset()
        return normalize_tags(interests.split(","))

    def accepts_age(self, age: Optional[int]) -> bool:
        """Unknown ages are accepted; otherwise check the optional bounds."""
        if age is None:
            return True
        if self.min_age is not None and age < self.min_age:
            return False
        if self.max_age is not None and age > self.max_age:
            return False
        return True

    def accepts_gender(self, gender: GenderIdentity) -> bool:
        return gender in self.accepted_genders


@dataclass
class MatchRecord:
    """A proposed pairing between two users and its current status.

    Records are never deleted; status only moves from PENDING to
    ACCEPTED or REJECTED.
    """
    user_id_1: UUID
    user_id_2: UUID
    compatibility_score: int
    status: MatchStatus = MatchStatus.PENDING
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)
    last_modified_at: datetime = field(default_factory=_utcnow)
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None

    def __post_init__(self):
        if self.user_id_1 is None or self.user_id_2 is None:
            raise ValidationError("Match record requires two user ids")
        if self.user_id_1 == self.user_id_2:
            raise ValidationError("Match record user ids must be distinct")
        validate_score(self.compatibility_score, "compatibility_score")
        self.status = MatchStatus(self.status)

    def accept(self) -> None:
        self._transition(MatchStatus.ACCEPTED)
        self.accepted_at = self.last_modified_at

    def reject(self) -> None:
        self._transition(MatchStatus.REJECTED)
        self.rejected_at = self.last_modified_at

    def update_compatibility_score(self, score: int) -> None:
        self.compatibility_score = validate_score(score, "compatibility_score")
        self.last_modified_at = _utcnow()

    def involves(self, user_id: UUID) -> bool:
        return user_id == self.user_id_1 or user_id == self.user_id_2

    def other_user_id(self, user_id: UUID) -> UUID:
        """Return the counterpart of user_id in this record.

        Raises:
            ValidationError: If user_id is not part of the record
        """
        if not self.involves(user_id):
            raise ValidationError(f"User {user_id} is not part of match {self.id}")
        return self.user_id_2 if user_id == self.user_id_1 else self.user_id_1

    def _transition(self, to_status: MatchStatus) -> None:
        if self.status != MatchStatus.PENDING:
            raise ValidationError(
                f"Cannot move match {self.id} from {self.status.value} to {to_status.value}"
            )
        self.status = to_status
        self.last_modified_at = _utcnow()


class CompatibilityScore:
    """Four-factor compatibility score between two profiles.

    Every sub-score is validated to [0, 100] when assigned; out-of-range
    writes raise ValidationError instead of being clamped.

    Custom factor scores are kept for introspection only. They are not part
    of overall_score: no blending rule exists for them yet.
    """

    def __init__(
        self,
        interest: int = 0,
        personality: int = 0,
        lifestyle: int = 0,
        value: int = 0,
        used_fallback: bool = False
    ):
        self._interest = validate_score(interest, "interest")
        self._personality = validate_score(personality, "personality")
        self._lifestyle = validate_score(lifestyle, "lifestyle")
        self._value = validate_score(value, "value")
        self.used_fallback = used_fallback
        self._factor_scores: Dict[str, int] = {}
        self.created_at = _utcnow()
        self.last_modified_at = self.created_at

    @property
    def interest(self) -> int:
        return self._interest

    @interest.setter
    def interest(self, score: int) -> None:
        self._interest = validate_score(score, "interest")
        self._touch()

    @property
    def personality(self) -> int:
        return self._personality

    @personality.setter
    def personality(self, score: int) -> None:
        self._personality = validate_score(score, "personality")
        self._touch()

    @property
    def lifestyle(self) -> int:
        return self._lifestyle

    @lifestyle.setter
    def lifestyle(self, score: int) -> None:
        self._lifestyle = validate_score(score, "lifestyle")
        self._touch()

    @property
    def value(self) -> int:
        return self._value

    @value.setter
    def value(self, score: int) -> None:
        self._value = validate_score(score, "value")
        self._touch()

    @property
    def factor_scores(self) -> Dict[str, int]:
        return dict(self._factor_scores)

    @property
    def overall_score(self) -> int:
        weighted = (
            self._interest * INTEREST_WEIGHT
            + self._personality * PERSONALITY_WEIGHT
            + self._lifestyle * LIFESTYLE_WEIGHT
            + self._value * VALUE_WEIGHT
        )
        return max(SCORE_MIN, min(SCORE_MAX, round_half_up(weighted)))

    @property
    def compatibility_level(self) -> CompatibilityLevel:
        return CompatibilityLevel.for_score(self.overall_score)

    def update_core_factors(self, interest: int, personality: int, lifestyle: int, value: int) -> None:
        """Replace all four sub-scores; nothing is written unless all are valid."""
        validate_score(interest, "interest")
        validate_score(personality, "personality")
        validate_score(lifestyle, "lifestyle")
        validate_score(value, "value")
        self._interest = interest
        self._personality = personality
        self._lifestyle = lifestyle
        self._value = value
        self._touch()

    def add_factor_score(self, name: str, score: int) -> None:
        if not name or not name.strip():
            raise ValidationError("Factor name is required")
        self._factor_scores[name.strip()] = validate_score(score, f"factor '{name}'")
        self._touch()

    def as_breakdown(self) -> dict:
        return {
            "interest": self._interest,
            "personality": self._personality,
            "lifestyle": self._lifestyle,
            "value": self._value,
            "overall": self.overall_score,
            "level": self.compatibility_level.value,
            "factor_scores": self.factor_scores,
            "used_fallback": self.used_fallback,
        }

    def _touch(self) -> None:
        self.last_modified_at = _utcnow()

    def __repr__(self) -> str:
        return (
            f"CompatibilityScore(interest={self._interest}, personality={self._personality}, "
            f"lifestyle={self._lifestyle}, value={self._value}, overall={self.overall_score}, "
            f"used_fallback={self.used_fallback})"
        )


@dataclass
class UserPreferences:
    """Learned matching preferences for one user.

    Created lazily on the first learning session and only ever additively
    updated afterwards.

    Attributes:
        user_id: Owner's user UUID
        interest_weights: Interest tag -> weight in [0, 1]
        personality_trait_preferences: Trait -> preference in [-1, 1]
        match_acceptance_count: Accepted matches seen across sessions
        match_rejection_count: Rejected matches seen across sessions
        average_accepted_compatibility_score: Running mean of accepted scores
        learning_session_count: Completed learning sessions
        last_learning_session_at: When the last session completed
    """
    user_id: UUID
    interest_weights: Dict[str, float] = field(default_factory=dict)
    personality_trait_preferences: Dict[str, float] = field(default_factory=dict)
    match_acceptance_count: int = 0
    match_rejection_count: int = 0
    average_accepted_compatibility_score: float = 0.0
    learning_session_count: int = 0
    last_learning_session_at: Optional[datetime] = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)
    last_updated_at: datetime = field(default_factory=_utcnow)

    def update_interest_weight(self, interest: str, weight: float) -> None:
        if not interest or not interest.strip():
            raise ValidationError("Interest tag is required")
        if not math.isfinite(weight) or weight < 0 or weight > 1:
            raise ValidationError(f"Interest weight must be between 0 and 1, got {weight}")
        self.interest_weights[normalize_tag(interest)] = float(weight)
        self.last_updated_at = _utcnow()

    def update_personality_trait_preference(self, trait: str, preference: float) -> None:
        if not trait or not trait.strip():
            raise ValidationError("Personality trait is required")
        if not math.isfinite(preference) or preference < -1 or preference > 1:
            raise ValidationError(f"Trait preference must be between -1 and 1, got {preference}")
        self.personality_trait_preferences[normalize_tag(trait)] = float(preference)
        self.last_updated_at = _utcnow()

    def record_match_acceptance(self, compatibility_score: int) -> None:
        validate_score(compatibility_score, "compatibility_score")
        self.match_acceptance_count += 1
        self.average_accepted_compatibility_score += (
            compatibility_score - self.average_accepted_compatibility_score
        ) / self.match_acceptance_count
        self.last_updated_at = _utcnow()

    def record_match_rejection(self) -> None:
        self.match_rejection_count += 1
        self.last_updated_at = _utcnow()

    def record_learning_session(self) -> None:
        self.learning_session_count += 1
        self.last_learning_session_at = _utcnow()
        self.last_updated_at = self.last_learning_session_at

    @property
    def acceptance_rate(self) -> float:
        total = self.match_acceptance_count + self.match_rejection_count
        if total == 0:
            return 0.0
        return self.match_acceptance_count / total

    @property
    def has_history(self) -> bool:
        return self.match_acceptance_count > 0

    def clone(self) -> "UserPreferences":
        """Deep copy used as the learner's working copy."""
        return copy.deepcopy(self)
