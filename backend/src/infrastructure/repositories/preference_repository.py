"""Preference store backed by the user_preferences table"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user_preferences import UserPreferencesModel
from domain.matching import PreferenceStorePort, UserPreferences
from .errors import translate_database_errors

logger = logging.getLogger(__name__)


def preferences_to_domain(row: UserPreferencesModel) -> UserPreferences:
    return UserPreferences(
        id=row.id,
        user_id=row.user_id,
        interest_weights=dict(row.interest_weights or {}),
        personality_trait_preferences=dict(row.personality_trait_preferences or {}),
        match_acceptance_count=row.match_acceptance_count,
        match_rejection_count=row.match_rejection_count,
        average_accepted_compatibility_score=row.average_accepted_compatibility_score,
        learning_session_count=row.learning_session_count,
        last_learning_session_at=row.last_learning_session_at,
        created_at=row.created_at,
        last_updated_at=row.last_updated_at,
    )


def _copy_onto_row(preferences: UserPreferences, row: UserPreferencesModel) -> None:
    # JSON columns need fresh objects to register as changed
    row.interest_weights = dict(preferences.interest_weights)
    row.personality_trait_preferences = dict(preferences.personality_trait_preferences)
    row.match_acceptance_count = preferences.match_acceptance_count
    row.match_rejection_count = preferences.match_rejection_count
    row.average_accepted_compatibility_score = preferences.average_accepted_compatibility_score
    row.learning_session_count = preferences.learning_session_count
    row.last_learning_session_at = preferences.last_learning_session_at
    row.last_updated_at = preferences.last_updated_at


class SqlAlchemyPreferenceStore(PreferenceStorePort):
    """Learned preferences, one row per user.

    Concurrent learning sessions for the same user are last-writer-wins.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_row(self, user_id: UUID) -> Optional[UserPreferencesModel]:
        with translate_database_errors("preference lookup"):
            result = await self.session.execute(
                select(UserPreferencesModel).where(UserPreferencesModel.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def get_by_user_id(self, user_id: UUID) -> Optional[UserPreferences]:
        row = await self._get_row(user_id)
        return preferences_to_domain(row) if row is not None else None

    async def get_or_create(self, user_id: UUID) -> UserPreferences:
        row = await self._get_row(user_id)
        if row is not None:
            return preferences_to_domain(row)

        preferences = UserPreferences(user_id=user_id)
        row = UserPreferencesModel(id=preferences.id, user_id=user_id, created_at=preferences.created_at)
        _copy_onto_row(preferences, row)
        with translate_database_errors("preference insert"):
            self.session.add(row)
            await self.session.flush()
        logger.info("Created empty preferences", extra={"user_id": user_id})
        return preferences

    async def update(self, preferences: UserPreferences) -> UserPreferences:
        row = await self._get_row(preferences.user_id)
        if row is None:
            row = UserPreferencesModel(
                id=preferences.id,
                user_id=preferences.user_id,
                created_at=preferences.created_at,
            )
            self.session.add(row)
        _copy_onto_row(preferences, row)
        with translate_database_errors("preference update"):
            await self.session.flush()
        return preferences
