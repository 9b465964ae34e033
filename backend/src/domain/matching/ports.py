"""Matching ports and interfaces for hexagonal architecture.

The matching engine depends on these ports only. Store adapters live in
infrastructure/repositories, oracle adapters in infrastructure/ai.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from .cancellation import CancellationToken
from .models import MatchRecord, Profile, UserPreferences


class ProfileStorePort(ABC):
    """Read access to dating profiles."""

    @abstractmethod
    async def get_by_id(self, profile_id: UUID) -> Profile:
        """Load a single profile.

        Raises:
            NotFoundError: If no profile exists for profile_id
            PersistenceError: If the store is unavailable
        """
        pass

    @abstractmethod
    async def get_candidate_pool(self, user_id: UUID, limit: int) -> List[Profile]:
        """Load up to `limit` candidate profiles for user_id.

        Excluding the user themselves, blocked users and existing matches is
        the store's responsibility.

        Raises:
            PersistenceError: If the store is unavailable
        """
        pass


class MatchHistoryStorePort(ABC):
    """Read access to match records."""

    @abstractmethod
    async def get_matches_for_user(self, user_id: UUID) -> List[MatchRecord]:
        """Load every match record in which user_id takes part.

        Raises:
            PersistenceError: If the store is unavailable
        """
        pass


class PreferenceStorePort(ABC):
    """Persistence for learned user preferences."""

    @abstractmethod
    async def get_by_user_id(self, user_id: UUID) -> Optional[UserPreferences]:
        """Load preferences, or None if the user never had a learning session."""
        pass

    @abstractmethod
    async def get_or_create(self, user_id: UUID) -> UserPreferences:
        """Load preferences, creating an empty record on first use."""
        pass

    @abstractmethod
    async def update(self, preferences: UserPreferences) -> UserPreferences:
        """Persist preferences (last writer wins).

        Raises:
            PersistenceError: If the write fails
        """
        pass


class IntelligenceOraclePort(ABC):
    """External scoring service for subjective compatibility sub-scores.

    Implementations must return a clean integer in [0, 100] or raise an
    OracleError. Partial or malformed answers are failures.
    """

    @abstractmethod
    async def score(
        self,
        text_a: str,
        text_b: str,
        cancellation: Optional[CancellationToken] = None
    ) -> int:
        """Score the compatibility of two profile texts.

        Args:
            text_a: Text rendering of the first profile
            text_b: Text rendering of the second profile
            cancellation: Optional cancellation token

        Returns:
            Integer compatibility score in [0, 100]

        Raises:
            OracleTimeoutError: Request timed out
            OracleServiceError: Provider unavailable or returned an error
            OracleInvalidResponseError: Response was not a clean score
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Oracle identifier for logs and metrics (e.g. 'openai', 'word_overlap')."""
        pass


# Custom exceptions for oracle operations
class OracleError(Exception):
    """Base exception for oracle operations"""
    pass


class OracleTimeoutError(OracleError):
    """Oracle request timed out"""
    pass


class OracleServiceError(OracleError):
    """Oracle unavailable or returned an error"""
    pass


class OracleInvalidResponseError(OracleError):
    """Oracle returned an invalid or out-of-range response"""
    pass
