"""Preference learning from a user's accept/reject history.

A learning session:
1. Loads (or lazily creates) the user's preferences
2. Loads every match record the user takes part in
3. Records each accepted score (running mean) and each rejection
4. Re-weights interest tags by how often they appear on accepted matches
5. Applies a coarse personality heuristic from the accepted/rejected means
6. Counts the session and persists once

All updates go to a working copy; nothing is written unless the whole
session succeeds.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from uuid import UUID

from domain.matching import (
    CancellationToken,
    MatchHistoryStorePort,
    MatchRecord,
    MatchStatus,
    NotFoundError,
    PreferenceStorePort,
    ProfileStorePort,
    UserPreferences,
    ValidationError,
    check_cancelled,
)
from observability.metrics import learning_matches_analyzed, learning_sessions_total

logger = logging.getLogger(__name__)

HIGH_ACCEPTED_AVERAGE = 75
LOW_REJECTED_AVERAGE = 60

COMPATIBLE_TRAITS = {"compatible": 0.8, "similar": 0.7}
INCOMPATIBLE_TRAITS = {"incompatible": -0.8, "different": -0.5}

NO_HISTORY_MESSAGE = "No match history available for learning"


def parse_user_id(user_id) -> UUID:
    """Accept a UUID or a UUID string.

    Raises:
        ValidationError: If user_id is missing or not a valid UUID
    """
    if user_id is None or user_id == "":
        raise ValidationError("user_id is required")
    if isinstance(user_id, UUID):
        return user_id
    if isinstance(user_id, str):
        try:
            return UUID(user_id)
        except ValueError:
            raise ValidationError(f"Invalid user_id format: {user_id!r}")
    raise ValidationError(f"Invalid user_id type: {type(user_id).__name__}")


@dataclass
class LearningSummary:
    """Outcome of one learning session.

    Attributes:
        user_id: User the session ran for
        preferences_updated: Always True for a completed session
        matches_analyzed: Match records loaded for the user
        accepted_count: Accepted records in this session
        rejected_count: Rejected records in this session
        acceptance_rate: Lifetime accepted / (accepted + rejected)
        average_accepted_score: Lifetime running mean of accepted scores
        interest_weights: Learned tag weights after the session
        personality_trait_preferences: Trait preferences after the session
        learning_session_count: Sessions completed including this one
        message: Human-readable note (set when there was nothing to learn)
    """
    user_id: UUID
    preferences_updated: bool
    matches_analyzed: int
    accepted_count: int
    rejected_count: int
    acceptance_rate: float
    average_accepted_score: float
    learning_session_count: int
    interest_weights: Dict[str, float] = field(default_factory=dict)
    personality_trait_preferences: Dict[str, float] = field(default_factory=dict)
    message: Optional[str] = None


class PreferenceLearner:
    """Derive interest weights and trait preferences from match history."""

    def __init__(
        self,
        preference_store: PreferenceStorePort,
        match_history_store: MatchHistoryStorePort,
        profile_store: ProfileStorePort
    ):
        self.preference_store = preference_store
        self.match_history_store = match_history_store
        self.profile_store = profile_store

    async def learn(self, user_id, cancellation: Optional[CancellationToken] = None) -> LearningSummary:
        """Run a learning session for user_id.

        Args:
            user_id: User UUID (or UUID string)
            cancellation: Optional cancellation token

        Returns:
            LearningSummary for the session

        Raises:
            ValidationError: If user_id is missing or malformed (before any I/O)
            OperationCancelledError: If cancelled; nothing is persisted
            PersistenceError: Propagated unmodified from the stores
        """
        user_id = parse_user_id(user_id)
        try:
            summary = await self._run_session(user_id, cancellation)
        except Exception:
            learning_sessions_total.labels(status="error").inc()
            raise
        learning_sessions_total.labels(status="success").inc()
        return summary

    async def _run_session(self, user_id: UUID, cancellation: Optional[CancellationToken]) -> LearningSummary:
        logger.info("Learning preferences", extra={"user_id": user_id})

        check_cancelled(cancellation, "preference load")
        stored = await self.preference_store.get_or_create(user_id)
        preferences = stored.clone()

        check_cancelled(cancellation, "match history load")
        matches = await self.match_history_store.get_matches_for_user(user_id)
        learning_matches_analyzed.observe(len(matches))

        accepted, rejected = self._partition(user_id, matches)
        for match in accepted:
            preferences.record_match_acceptance(match.compatibility_score)
        for _ in rejected:
            preferences.record_match_rejection()

        if accepted:
            await self._learn_interest_weights(user_id, preferences, accepted, cancellation)
        if accepted or rejected:
            self._learn_personality_preferences(preferences, accepted, rejected)

        preferences.record_learning_session()

        check_cancelled(cancellation, "preference write")
        await self.preference_store.update(preferences)

        if matches:
            logger.info(
                f"Preferences learned: {preferences.match_acceptance_count} acceptances, "
                f"{preferences.match_rejection_count} rejections",
                extra={"user_id": user_id}
            )
        else:
            logger.info("No match history found", extra={"user_id": user_id})

        return LearningSummary(
            user_id=user_id,
            preferences_updated=True,
            matches_analyzed=len(matches),
            accepted_count=len(accepted),
            rejected_count=len(rejected),
            acceptance_rate=preferences.acceptance_rate,
            average_accepted_score=preferences.average_accepted_compatibility_score,
            learning_session_count=preferences.learning_session_count,
            interest_weights=dict(preferences.interest_weights),
            personality_trait_preferences=dict(preferences.personality_trait_preferences),
            message=None if matches else NO_HISTORY_MESSAGE,
        )

    @staticmethod
    def _partition(user_id: UUID, matches: List[MatchRecord]):
        accepted: List[MatchRecord] = []
        rejected: List[MatchRecord] = []
        for match in matches:
            if not match.involves(user_id):
                logger.warning(
                    f"Ignoring match {match.id} that does not involve the user",
                    extra={"user_id": user_id}
                )
                continue
            if match.status == MatchStatus.ACCEPTED:
                accepted.append(match)
            elif match.status == MatchStatus.REJECTED:
                rejected.append(match)
        return accepted, rejected

    async def _learn_interest_weights(
        self,
        user_id: UUID,
        preferences: UserPreferences,
        accepted: List[MatchRecord],
        cancellation: Optional[CancellationToken]
    ) -> None:
        """weight(tag) = min(1, occurrences on accepted partners / accepted count)."""
        frequency: Counter = Counter()
        for match in accepted:
            other_id = match.other_user_id(user_id)
            check_cancelled(cancellation, "profile fetch")
            try:
                other = await self.profile_store.get_by_id(other_id)
            except NotFoundError:
                logger.warning(
                    "Accepted match partner profile not found, skipping",
                    extra={"user_id": user_id, "candidate_id": other_id}
                )
                continue
            frequency.update(other.interest_tags)

        total_accepted = len(accepted)
        for tag, count in sorted(frequency.items()):
            preferences.update_interest_weight(tag, min(count / total_accepted, 1.0))

    @staticmethod
    def _learn_personality_preferences(
        preferences: UserPreferences,
        accepted: List[MatchRecord],
        rejected: List[MatchRecord]
    ) -> None:
        if accepted:
            average_accepted = sum(m.compatibility_score for m in accepted) / len(accepted)
            if average_accepted > HIGH_ACCEPTED_AVERAGE:
                for trait, value in COMPATIBLE_TRAITS.items():
                    preferences.update_personality_trait_preference(trait, value)

        # An empty rejected set averages to 0
        average_rejected = (
            sum(m.compatibility_score for m in rejected) / len(rejected) if rejected else 0
        )
        if average_rejected < LOW_REJECTED_AVERAGE:
            for trait, value in INCOMPATIBLE_TRAITS.items():
                preferences.update_personality_trait_preference(trait, value)
