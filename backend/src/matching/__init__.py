"""Matching engine: compatibility scoring, preference learning and ranking.

The HTTP router lives in matching.router and is imported by main.py.
"""

from .scorer import (
    CompatibilityScorer,
    OracleOutcome,
    build_profile_text,
    calculate_fallback_score,
    calculate_interest_score,
    calculate_lifestyle_score,
    pair_fingerprint,
)
from .preference_learner import LearningSummary, PreferenceLearner, parse_user_id
from .ranker import MatchRanker, RankedCandidate, RankingResult, apply_boost, calculate_preference_boost

__all__ = [
    "CompatibilityScorer",
    "OracleOutcome",
    "build_profile_text",
    "calculate_fallback_score",
    "calculate_interest_score",
    "calculate_lifestyle_score",
    "pair_fingerprint",
    "LearningSummary",
    "PreferenceLearner",
    "parse_user_id",
    "MatchRanker",
    "RankedCandidate",
    "RankingResult",
    "apply_boost",
    "calculate_preference_boost",
]
