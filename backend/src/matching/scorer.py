"""Compatibility scoring between two profiles.

Implements the four-factor formula:
- Interest    = |A ∩ B| / |A ∪ B| * 100 (neutral 50 if either side has no tags)
- Personality = oracle score, or local fallback
- Lifestyle   = location (40) + mutual age range (30) + gender reciprocity (30)
- Value       = oracle score, or local fallback
- Overall     = round(0.30*I + 0.30*P + 0.25*L + 0.15*V), clamped to 0..100

The oracle is optional at runtime: any timeout, error or malformed answer
switches both oracle factors to fallback = min(100, 40 + round(ratio * 60)),
where ratio is the interest overlap ratio. The caller only sees
CompatibilityScore.used_fallback.
"""

import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from domain.matching import (
    CancellationToken,
    CompatibilityScore,
    IntelligenceOraclePort,
    OperationCancelledError,
    OracleInvalidResponseError,
    OracleTimeoutError,
    Profile,
    ProfileStorePort,
    ValidationError,
    check_cancelled,
    round_half_up,
)
from observability.metrics import (
    compatibility_score_histogram,
    oracle_calls_total,
    oracle_latency_ms,
    scoring_fallbacks_total,
)

logger = logging.getLogger(__name__)

NEUTRAL_INTEREST_SCORE = 50

# Fallback heuristic for personality/value
FALLBACK_BASE = 40
FALLBACK_SPAN = 60
FALLBACK_NO_INTERESTS = 60

# Lifestyle point budget (sums to 100)
LOCATION_POINTS = 40
LOCATION_MISMATCH_POINTS = 12
LOCATION_UNKNOWN_POINTS = 20
AGE_POINTS = 30
AGE_ONE_WAY_POINTS = 15
GENDER_POINTS = 30

ASPECT_PERSONALITY = "personality"
ASPECT_VALUES = "values"


@dataclass
class OracleOutcome:
    """Tagged result of one oracle request.

    Attributes:
        score: Oracle score in [0, 100] (None when the oracle failed)
        used_fallback: True when the caller must use the local heuristic
        reason: Failure class (timeout, error, invalid) when used_fallback
    """
    score: Optional[int]
    used_fallback: bool
    reason: Optional[str] = None

    @classmethod
    def success(cls, score: int) -> "OracleOutcome":
        return cls(score=score, used_fallback=False)

    @classmethod
    def failure(cls, reason: str) -> "OracleOutcome":
        return cls(score=None, used_fallback=True, reason=reason)


def interest_overlap_ratio(profile_a: Profile, profile_b: Profile) -> Optional[float]:
    """Jaccard ratio of the two tag sets, or None if either set is empty."""
    tags_a = profile_a.interest_tags
    tags_b = profile_b.interest_tags
    if not tags_a or not tags_b:
        return None
    return len(tags_a & tags_b) / len(tags_a | tags_b)


def calculate_interest_score(profile_a: Profile, profile_b: Profile) -> int:
    """Interest overlap scaled to 0..100 (truncated).

    Identical tag sets score 100, disjoint sets 0. If either profile has no
    tags there is nothing to compare and the neutral score 50 is used.
    """
    tags_a = profile_a.interest_tags
    tags_b = profile_b.interest_tags
    if not tags_a or not tags_b:
        return NEUTRAL_INTEREST_SCORE
    return len(tags_a & tags_b) * 100 // len(tags_a | tags_b)


def calculate_fallback_score(profile_a: Profile, profile_b: Profile) -> int:
    """Deterministic stand-in for the oracle's personality/value scores."""
    ratio = interest_overlap_ratio(profile_a, profile_b)
    if ratio is None:
        return FALLBACK_NO_INTERESTS
    return min(100, FALLBACK_BASE + round_half_up(ratio * FALLBACK_SPAN))


def calculate_lifestyle_score(profile_a: Profile, profile_b: Profile) -> int:
    """Location, mutual age-range and gender reciprocity points (0..100)."""
    score = 0

    location_a = (profile_a.location or "").strip().lower()
    location_b = (profile_b.location or "").strip().lower()
    if not location_a or not location_b:
        score += LOCATION_UNKNOWN_POINTS
    elif location_a == location_b:
        score += LOCATION_POINTS
    else:
        score += LOCATION_MISMATCH_POINTS

    a_accepts_b = profile_a.accepts_age(profile_b.age)
    b_accepts_a = profile_b.accepts_age(profile_a.age)
    if a_accepts_b and b_accepts_a:
        score += AGE_POINTS
    elif a_accepts_b or b_accepts_a:
        score += AGE_ONE_WAY_POINTS

    if profile_a.accepts_gender(profile_b.gender_identity) and profile_b.accepts_gender(profile_a.gender_identity):
        score += GENDER_POINTS

    return score


def build_profile_text(profile: Profile, aspect: str) -> str:
    """Render a profile as oracle input text.

    Example:
        >>> build_profile_text(Profile(id=uuid4(), bio="Loves dogs"), "values")
        'Aspect: values. Bio: Loves dogs'
    """
    parts = [f"Aspect: {aspect}"]
    if profile.display_name:
        parts.append(f"Name: {profile.display_name}")
    if profile.age is not None:
        parts.append(f"Age: {profile.age}")
    if profile.bio:
        parts.append(f"Bio: {profile.bio}")
    if profile.interest_tags:
        parts.append(f"Interests: {', '.join(sorted(profile.interest_tags))}")
    if profile.occupation:
        parts.append(f"Occupation: {profile.occupation}")
    if profile.location:
        parts.append(f"Location: {profile.location}")
    return ". ".join(parts)


def pair_fingerprint(text_a: str, text_b: str) -> str:
    """Short stable fingerprint of a profile pair for log correlation."""
    digest = hashlib.sha256()
    digest.update(text_a.encode("utf-8"))
    digest.update(b"\x00")
    digest.update(text_b.encode("utf-8"))
    return digest.hexdigest()[:16]


class CompatibilityScorer:
    """Calculate compatibility scores between two resolved profiles.

    Stateless apart from its collaborators; one instance can serve
    concurrent requests.
    """

    def __init__(self, oracle: IntelligenceOraclePort, timeout_seconds: float = 5.0):
        """Initialize scorer.

        Args:
            oracle: Intelligence oracle for personality/value scores
            timeout_seconds: Per-call oracle timeout
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.oracle = oracle
        self.timeout_seconds = timeout_seconds

    async def score(
        self,
        profile_a: Profile,
        profile_b: Profile,
        cancellation: Optional[CancellationToken] = None
    ) -> CompatibilityScore:
        """Score two profiles.

        Args:
            profile_a: First profile
            profile_b: Second profile
            cancellation: Optional cancellation token

        Returns:
            CompatibilityScore with used_fallback set if the oracle failed

        Raises:
            ValidationError: If a profile is missing or both are the same profile
            OperationCancelledError: If cancelled before an oracle call
        """
        self._validate_pair(profile_a, profile_b)

        interest = calculate_interest_score(profile_a, profile_b)
        lifestyle = calculate_lifestyle_score(profile_a, profile_b)

        personality_outcome = await self._ask_oracle(ASPECT_PERSONALITY, profile_a, profile_b, cancellation)
        value_outcome = None
        if not personality_outcome.used_fallback:
            value_outcome = await self._ask_oracle(ASPECT_VALUES, profile_a, profile_b, cancellation)

        if personality_outcome.used_fallback or value_outcome.used_fallback:
            reason = personality_outcome.reason or value_outcome.reason
            fallback = calculate_fallback_score(profile_a, profile_b)
            scoring_fallbacks_total.labels(reason=reason).inc()
            logger.warning(
                f"Oracle unavailable ({reason}), using fallback score {fallback}",
                extra={"user_id": profile_a.id, "candidate_id": profile_b.id, "reason": reason}
            )
            result = CompatibilityScore(
                interest=interest,
                personality=fallback,
                lifestyle=lifestyle,
                value=fallback,
                used_fallback=True,
            )
        else:
            result = CompatibilityScore(
                interest=interest,
                personality=personality_outcome.score,
                lifestyle=lifestyle,
                value=value_outcome.score,
            )

        compatibility_score_histogram.observe(result.overall_score)
        logger.debug(
            f"Compatibility calculated: {result.overall_score}",
            extra={"user_id": profile_a.id, "candidate_id": profile_b.id}
        )
        return result

    async def score_by_id(
        self,
        profile_id_a: UUID,
        profile_id_b: UUID,
        profile_store: ProfileStorePort,
        cancellation: Optional[CancellationToken] = None
    ) -> CompatibilityScore:
        """Resolve both profiles through the store, then score them.

        Raises:
            ValidationError: If an id is missing or both ids are equal
            NotFoundError: If either profile does not exist
        """
        if profile_id_a is None or profile_id_b is None:
            raise ValidationError("Both profile ids are required")
        if profile_id_a == profile_id_b:
            raise ValidationError("Cannot score a profile against itself")

        check_cancelled(cancellation, "profile fetch")
        profile_a = await profile_store.get_by_id(profile_id_a)
        check_cancelled(cancellation, "profile fetch")
        profile_b = await profile_store.get_by_id(profile_id_b)
        return await self.score(profile_a, profile_b, cancellation)

    async def _ask_oracle(
        self,
        aspect: str,
        profile_a: Profile,
        profile_b: Profile,
        cancellation: Optional[CancellationToken]
    ) -> OracleOutcome:
        """Request one sub-score from the oracle; never raises on oracle failure."""
        check_cancelled(cancellation, f"{aspect} oracle call")

        text_a = build_profile_text(profile_a, aspect)
        text_b = build_profile_text(profile_b, aspect)
        fingerprint = pair_fingerprint(text_a, text_b)
        oracle_name = self.oracle.name
        log_extra = {"pair_fingerprint": fingerprint, "oracle": oracle_name}

        start_time = time.perf_counter()
        try:
            raw_score = await asyncio.wait_for(
                self.oracle.score(text_a, text_b, cancellation),
                timeout=self.timeout_seconds
            )
            score = self._check_oracle_score(raw_score)
        except OperationCancelledError:
            oracle_calls_total.labels(oracle=oracle_name, aspect=aspect, outcome="cancelled").inc()
            raise
        except (asyncio.TimeoutError, OracleTimeoutError):
            oracle_calls_total.labels(oracle=oracle_name, aspect=aspect, outcome="timeout").inc()
            logger.warning(f"Oracle {aspect} call timed out", extra=log_extra)
            return OracleOutcome.failure("timeout")
        except OracleInvalidResponseError as e:
            oracle_calls_total.labels(oracle=oracle_name, aspect=aspect, outcome="invalid").inc()
            logger.warning(f"Oracle {aspect} response rejected: {e}", extra=log_extra)
            return OracleOutcome.failure("invalid")
        except Exception as e:
            oracle_calls_total.labels(oracle=oracle_name, aspect=aspect, outcome="error").inc()
            logger.warning(f"Oracle {aspect} call failed: {e}", extra=log_extra, exc_info=True)
            return OracleOutcome.failure("error")
        finally:
            oracle_latency_ms.labels(oracle=oracle_name).observe((time.perf_counter() - start_time) * 1000)

        oracle_calls_total.labels(oracle=oracle_name, aspect=aspect, outcome="success").inc()
        return OracleOutcome.success(score)

    @staticmethod
    def _check_oracle_score(raw_score) -> int:
        if isinstance(raw_score, bool) or not isinstance(raw_score, int):
            raise OracleInvalidResponseError(f"Expected integer score, got {type(raw_score).__name__}")
        if raw_score < 0 or raw_score > 100:
            raise OracleInvalidResponseError(f"Score {raw_score} outside 0..100")
        return raw_score

    @staticmethod
    def _validate_pair(profile_a: Profile, profile_b: Profile) -> None:
        if not isinstance(profile_a, Profile) or not isinstance(profile_b, Profile):
            raise ValidationError("Two resolved profiles are required")
        if profile_a.id == profile_b.id:
            raise ValidationError("Cannot score a profile against itself")
