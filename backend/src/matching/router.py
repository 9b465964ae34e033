"""Matching API endpoints.

Domain errors raised here are mapped to HTTP responses by the exception
handlers registered in main.py.
"""

import logging

from fastapi import APIRouter, Depends

from domain.matching import CancellationToken, CompatibilityScore, ProfileStorePort
from .dependencies import (
    get_cancellation_token,
    get_learner,
    get_profile_store,
    get_ranker,
    get_scorer,
)
from .preference_learner import PreferenceLearner
from .ranker import MatchRanker, RankedCandidate
from .schemas import (
    CompatibilityBreakdownSchema,
    CompatibilityRequest,
    CompatibilityResponse,
    ErrorResponse,
    LearnRequest,
    LearnResponse,
    RankedCandidateSchema,
    RankRequest,
    RankResponse,
)
from .scorer import CompatibilityScorer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/matching",
    tags=["matching"],
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        499: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


def _breakdown_schema(score: CompatibilityScore) -> CompatibilityBreakdownSchema:
    return CompatibilityBreakdownSchema(**score.as_breakdown())


def _candidate_schema(candidate: RankedCandidate) -> RankedCandidateSchema:
    return RankedCandidateSchema(
        candidate_id=candidate.candidate_id,
        base_score=candidate.base_score,
        adjusted_score=candidate.adjusted_score,
        boost=candidate.boost,
        preferences_applied=candidate.preferences_applied,
        used_fallback=candidate.used_fallback,
        display_name=candidate.display_name,
        location=candidate.location,
        interest_tags=sorted(candidate.interest_tags),
        breakdown=_breakdown_schema(candidate.breakdown),
    )


@router.post("/rank", response_model=RankResponse)
async def rank_matches(
    request: RankRequest,
    ranker: MatchRanker = Depends(get_ranker),
    cancellation: CancellationToken = Depends(get_cancellation_token)
):
    """Rank potential matches for a user.

    Scores an oversampled candidate pool, applies the user's learned
    preference boost and returns the best candidates first.
    """
    result = await ranker.rank(request.user_id, request.max_results, cancellation)
    return RankResponse(
        user_id=result.user_id,
        candidates=[_candidate_schema(c) for c in result.candidates],
        total_candidates=result.total_candidates,
        skipped_candidates=result.skipped_candidates,
        preferences_applied=result.preferences_applied,
        generated_at=result.generated_at,
    )


@router.post("/learn", response_model=LearnResponse)
async def learn_preferences(
    request: LearnRequest,
    learner: PreferenceLearner = Depends(get_learner),
    cancellation: CancellationToken = Depends(get_cancellation_token)
):
    """Re-learn a user's preferences from their match history."""
    summary = await learner.learn(request.user_id, cancellation)
    return LearnResponse(
        user_id=summary.user_id,
        preferences_updated=summary.preferences_updated,
        matches_analyzed=summary.matches_analyzed,
        accepted_count=summary.accepted_count,
        rejected_count=summary.rejected_count,
        acceptance_rate=summary.acceptance_rate,
        average_accepted_score=summary.average_accepted_score,
        learning_session_count=summary.learning_session_count,
        interest_weights=summary.interest_weights,
        personality_trait_preferences=summary.personality_trait_preferences,
        message=summary.message,
    )


@router.post("/compatibility", response_model=CompatibilityResponse)
async def score_compatibility(
    request: CompatibilityRequest,
    scorer: CompatibilityScorer = Depends(get_scorer),
    profile_store: ProfileStorePort = Depends(get_profile_store),
    cancellation: CancellationToken = Depends(get_cancellation_token)
):
    """Score the compatibility of two users."""
    score = await scorer.score_by_id(request.user_id_1, request.user_id_2, profile_store, cancellation)
    return CompatibilityResponse(
        user_id_1=request.user_id_1,
        user_id_2=request.user_id_2,
        breakdown=_breakdown_schema(score),
    )
