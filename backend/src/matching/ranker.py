"""Preference-weighted candidate ranking.

Pipeline:
1. Resolve the requesting profile (missing requester aborts the call)
2. Fetch an oversampled candidate pool (2 x max_results)
3. Load learned preferences (absent preferences = unweighted ranking)
4. Score candidates concurrently (bounded by a semaphore); candidates that
   cannot be scored are skipped; any other failure cancels the rest
5. Apply the preference boost:
   - avg(weight * 10) over the candidate's tags that carry a learned weight
   - +5 if the base score is within 10 of the user's average accepted score
   - clamp 0..15, adjusted = min(100, base + round(boost))
6. Stable sort by adjusted score DESC (ties keep pool order), take max_results
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, List, Optional, Tuple
from uuid import UUID

from domain.matching import (
    CancellationToken,
    CompatibilityScore,
    NotFoundError,
    PreferenceStorePort,
    Profile,
    ProfileStorePort,
    UserPreferences,
    ValidationError,
    check_cancelled,
    round_half_up,
)
from observability.metrics import ranking_candidates_skipped_total, ranking_duration_seconds
from .preference_learner import parse_user_id
from .scorer import CompatibilityScorer

logger = logging.getLogger(__name__)

MIN_RESULTS = 1
MAX_RESULTS = 100

INTEREST_BOOST_SCALE = 10
HISTORY_BONUS = 5
HISTORY_BONUS_WINDOW = 10
MAX_BOOST = 15


@dataclass
class RankedCandidate:
    """One ranked candidate with its score breakdown.

    Attributes:
        candidate_id: Candidate's user UUID
        base_score: Overall compatibility score before boosting
        adjusted_score: base_score + rounded preference boost (max 100)
        boost: Preference boost in [0, 15] before rounding
        breakdown: Full compatibility score of the pair
        preferences_applied: True if learned preferences shaped the boost
        display_name: Candidate name for display
        location: Candidate location for display
        interest_tags: Candidate interest tags for display
    """
    candidate_id: UUID
    base_score: int
    adjusted_score: int
    boost: float
    breakdown: CompatibilityScore
    preferences_applied: bool
    display_name: Optional[str] = None
    location: Optional[str] = None
    interest_tags: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def used_fallback(self) -> bool:
        return self.breakdown.used_fallback


@dataclass
class RankingResult:
    """Result of ranking a candidate pool for one user."""
    user_id: UUID
    candidates: List[RankedCandidate]
    total_candidates: int
    skipped_candidates: int
    preferences_applied: bool
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def calculate_preference_boost(
    base_score: int,
    candidate: Profile,
    preferences: Optional[UserPreferences]
) -> float:
    """Compute the bounded preference boost for one candidate.

    The interest part is an average over matched tags, so many weakly
    weighted tags cannot outscore one strongly weighted tag.

    Example:
        weights {"hiking": 0.9}, candidate tags {"hiking"}, base 75,
        no accepted history -> 9.0
    """
    if preferences is None:
        return 0.0

    matched_weights = [
        preferences.interest_weights[tag]
        for tag in candidate.interest_tags
        if tag in preferences.interest_weights
    ]
    boost = 0.0
    if matched_weights:
        boost = sum(weight * INTEREST_BOOST_SCALE for weight in matched_weights) / len(matched_weights)

    if preferences.has_history:
        if abs(base_score - preferences.average_accepted_compatibility_score) < HISTORY_BONUS_WINDOW:
            boost += HISTORY_BONUS

    return max(0.0, min(float(MAX_BOOST), boost))


def apply_boost(base_score: int, boost: float) -> int:
    return min(100, base_score + round_half_up(boost))


class MatchRanker:
    """Rank a candidate pool for a requesting user."""

    def __init__(
        self,
        profile_store: ProfileStorePort,
        preference_store: PreferenceStorePort,
        scorer: CompatibilityScorer,
        default_max_results: int = 10,
        oversample_factor: int = 2,
        max_concurrency: int = 8
    ):
        """Initialize ranker.

        Args:
            profile_store: Source of the requester and the candidate pool
            preference_store: Source of learned preferences
            scorer: Compatibility scorer
            default_max_results: Result count when rank() is called without one
            oversample_factor: Pool size = max_results * oversample_factor
            max_concurrency: Candidates scored in parallel per rank() call
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if oversample_factor < 1:
            raise ValueError("oversample_factor must be at least 1")
        self.profile_store = profile_store
        self.preference_store = preference_store
        self.scorer = scorer
        self.default_max_results = self._validate_max_results(default_max_results)
        self.oversample_factor = oversample_factor
        self.max_concurrency = max_concurrency

    async def rank(
        self,
        user_id,
        max_results: Optional[int] = None,
        cancellation: Optional[CancellationToken] = None
    ) -> RankingResult:
        """Rank candidates for user_id.

        Args:
            user_id: Requesting user's UUID (or UUID string)
            max_results: Number of results, 1..100 (default from settings)
            cancellation: Optional cancellation token

        Returns:
            RankingResult with at most max_results candidates

        Raises:
            ValidationError: If user_id or max_results is invalid (before any I/O)
            NotFoundError: If the requesting user has no profile
            OperationCancelledError: If cancelled at a remote-call boundary
            PersistenceError: Propagated unmodified from the stores
        """
        user_id = parse_user_id(user_id)
        if max_results is None:
            max_results = self.default_max_results
        max_results = self._validate_max_results(max_results)

        start_time = time.perf_counter()
        logger.info("Ranking matches", extra={"user_id": user_id, "max_results": max_results})

        check_cancelled(cancellation, "profile fetch")
        requester = await self.profile_store.get_by_id(user_id)

        check_cancelled(cancellation, "candidate pool fetch")
        pool = await self.profile_store.get_candidate_pool(user_id, max_results * self.oversample_factor)

        check_cancelled(cancellation, "preference load")
        preferences = await self.preference_store.get_by_user_id(user_id)
        preferences_applied = preferences is not None

        if not pool:
            logger.info("No potential matches found", extra={"user_id": user_id})
            ranking_duration_seconds.observe(time.perf_counter() - start_time)
            return RankingResult(
                user_id=user_id,
                candidates=[],
                total_candidates=0,
                skipped_candidates=0,
                preferences_applied=preferences_applied,
            )

        scored = await self._score_pool(requester, pool, cancellation)

        ranked: List[Tuple[int, RankedCandidate]] = []
        for index, (candidate, breakdown) in enumerate(scored):
            if breakdown is None:
                continue
            base_score = breakdown.overall_score
            boost = calculate_preference_boost(base_score, candidate, preferences)
            ranked.append((index, RankedCandidate(
                candidate_id=candidate.id,
                base_score=base_score,
                adjusted_score=apply_boost(base_score, boost),
                boost=boost,
                breakdown=breakdown,
                preferences_applied=preferences_applied,
                display_name=candidate.display_name,
                location=candidate.location,
                interest_tags=candidate.interest_tags,
            )))

        # Pool index as the secondary key keeps ties in pool order
        ranked.sort(key=lambda item: (-item[1].adjusted_score, item[0]))
        top = [candidate for _, candidate in ranked[:max_results]]
        skipped = len(pool) - len(ranked)

        ranking_duration_seconds.observe(time.perf_counter() - start_time)
        logger.info(
            f"Ranked {len(top)} matches ({skipped} skipped)",
            extra={"user_id": user_id, "max_results": max_results}
        )

        return RankingResult(
            user_id=user_id,
            candidates=top,
            total_candidates=len(pool),
            skipped_candidates=skipped,
            preferences_applied=preferences_applied,
        )

    async def _score_pool(
        self,
        requester: Profile,
        pool: List[Profile],
        cancellation: Optional[CancellationToken]
    ) -> List[Tuple[Profile, Optional[CompatibilityScore]]]:
        """Score every candidate with bounded concurrency, preserving pool order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def score_one(candidate: Profile) -> Optional[CompatibilityScore]:
            async with semaphore:
                return await self._score_candidate(requester, candidate, cancellation)

        tasks = [asyncio.create_task(score_one(candidate)) for candidate in pool]
        try:
            breakdowns = await asyncio.gather(*tasks)
        except BaseException:
            # One failure stops the oracle calls still in flight for the rest
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return list(zip(pool, breakdowns))

    async def _score_candidate(
        self,
        requester: Profile,
        candidate: Profile,
        cancellation: Optional[CancellationToken]
    ) -> Optional[CompatibilityScore]:
        """Score one candidate; None means the candidate is skipped."""
        try:
            return await self.scorer.score(requester, candidate, cancellation)
        except NotFoundError as e:
            ranking_candidates_skipped_total.labels(reason="not_found").inc()
            logger.warning(
                f"Candidate vanished during ranking: {e}",
                extra={"user_id": requester.id, "candidate_id": candidate.id}
            )
        except ValidationError as e:
            ranking_candidates_skipped_total.labels(reason="validation").inc()
            logger.warning(
                f"Candidate could not be scored: {e}",
                extra={"user_id": requester.id, "candidate_id": candidate.id}
            )
        return None

    @staticmethod
    def _validate_max_results(max_results) -> int:
        if isinstance(max_results, bool) or not isinstance(max_results, int):
            raise ValidationError("max_results must be an integer")
        if max_results < MIN_RESULTS or max_results > MAX_RESULTS:
            raise ValidationError(f"max_results must be between {MIN_RESULTS} and {MAX_RESULTS}")
        return max_results
