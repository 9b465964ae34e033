"""Profile store backed by the profile table"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.match_record import MatchRecordModel
from models.profile import ProfileModel
from domain.matching import (
    NotFoundError,
    PersistenceError,
    Profile,
    ProfileStorePort,
    ValidationError,
)
from .errors import translate_database_errors

logger = logging.getLogger(__name__)


def profile_to_domain(row: ProfileModel) -> Profile:
    """Map a profile row onto the domain Profile.

    Raises:
        PersistenceError: If the stored row violates Profile invariants
    """
    try:
        return Profile(
            id=row.id,
            interest_tags=row.interest_tags or [],
            bio=row.bio,
            location=row.location,
            gender_identity=row.gender_identity,
            accepted_genders=row.accepted_genders or [],
            age=row.age,
            min_age=row.min_age,
            max_age=row.max_age,
            display_name=row.display_name,
            occupation=row.occupation,
        )
    except (ValueError, ValidationError) as e:
        raise PersistenceError(f"Stored profile {row.id} is invalid: {e}")


def profile_to_row(profile: Profile) -> ProfileModel:
    return ProfileModel(
        id=profile.id,
        display_name=profile.display_name,
        bio=profile.bio,
        location=profile.location,
        occupation=profile.occupation,
        interest_tags=sorted(profile.interest_tags),
        gender_identity=profile.gender_identity.value,
        accepted_genders=sorted(g.value for g in profile.accepted_genders),
        age=profile.age,
        min_age=profile.min_age,
        max_age=profile.max_age,
    )


class SqlAlchemyProfileStore(ProfileStorePort):
    """Read access to profiles for the matching engine.

    The candidate pool contains active profiles other than the requester
    that share no match record with the requester, oldest first.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, profile_id: UUID) -> Profile:
        with translate_database_errors("profile lookup"):
            result = await self.session.execute(
                select(ProfileModel).where(ProfileModel.id == profile_id)
            )
            row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Profile {profile_id} not found", subject_id=profile_id)
        return profile_to_domain(row)

    async def get_candidate_pool(self, user_id: UUID, limit: int) -> List[Profile]:
        matched_as_first = select(MatchRecordModel.user_id_2).where(MatchRecordModel.user_id_1 == user_id)
        matched_as_second = select(MatchRecordModel.user_id_1).where(MatchRecordModel.user_id_2 == user_id)

        query = (
            select(ProfileModel)
            .where(
                and_(
                    ProfileModel.id != user_id,
                    ProfileModel.is_active.is_(True),
                    ProfileModel.id.not_in(matched_as_first),
                    ProfileModel.id.not_in(matched_as_second),
                )
            )
            .order_by(ProfileModel.created_at, ProfileModel.id)
            .limit(limit)
        )

        with translate_database_errors("candidate pool query"):
            result = await self.session.execute(query)
            rows = result.scalars().all()

        pool: List[Profile] = []
        for row in rows:
            try:
                pool.append(profile_to_domain(row))
            except PersistenceError as e:
                logger.warning(f"Skipping unreadable candidate: {e}", extra={"user_id": user_id})
        return pool

    async def add(self, profile: Profile) -> Profile:
        """Insert a profile (seeding and tests)."""
        with translate_database_errors("profile insert"):
            self.session.add(profile_to_row(profile))
            await self.session.flush()
        return profile


__all__ = [
    "SqlAlchemyProfileStore",
    "profile_to_domain",
    "profile_to_row",
]
