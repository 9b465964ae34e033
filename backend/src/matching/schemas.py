"""Pydantic schemas for matching endpoints."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from uuid import UUID
from datetime import datetime


class RankRequest(BaseModel):
    """Request to rank candidates for a user."""
    user_id: UUID
    max_results: Optional[int] = Field(None, ge=1, le=100)


class LearnRequest(BaseModel):
    """Request to run a preference learning session."""
    user_id: UUID


class CompatibilityRequest(BaseModel):
    """Request to score a single pair of users."""
    user_id_1: UUID
    user_id_2: UUID


class CompatibilityBreakdownSchema(BaseModel):
    """Four-factor compatibility breakdown."""
    interest: int = Field(ge=0, le=100)
    personality: int = Field(ge=0, le=100)
    lifestyle: int = Field(ge=0, le=100)
    value: int = Field(ge=0, le=100)
    overall: int = Field(ge=0, le=100)
    level: str
    factor_scores: Dict[str, int] = Field(default_factory=dict)
    used_fallback: bool


class RankedCandidateSchema(BaseModel):
    """Ranked candidate with its score breakdown."""
    candidate_id: UUID
    base_score: int = Field(ge=0, le=100)
    adjusted_score: int = Field(ge=0, le=100)
    boost: float = Field(ge=0.0, le=15.0)
    preferences_applied: bool
    used_fallback: bool
    display_name: Optional[str] = None
    location: Optional[str] = None
    interest_tags: List[str]
    breakdown: CompatibilityBreakdownSchema


class RankResponse(BaseModel):
    """Result of ranking a candidate pool."""
    user_id: UUID
    candidates: List[RankedCandidateSchema]
    total_candidates: int
    skipped_candidates: int
    preferences_applied: bool
    generated_at: datetime


class LearnResponse(BaseModel):
    """Outcome of a learning session."""
    user_id: UUID
    preferences_updated: bool
    matches_analyzed: int
    accepted_count: int
    rejected_count: int
    acceptance_rate: float = Field(ge=0.0, le=1.0)
    average_accepted_score: float
    learning_session_count: int
    interest_weights: Dict[str, float]
    personality_trait_preferences: Dict[str, float]
    message: Optional[str] = None


class CompatibilityResponse(BaseModel):
    """Compatibility of one pair of users."""
    user_id_1: UUID
    user_id_2: UUID
    breakdown: CompatibilityBreakdownSchema


class ErrorResponse(BaseModel):
    """Error body returned by the domain exception handlers."""
    error: str
    message: str
