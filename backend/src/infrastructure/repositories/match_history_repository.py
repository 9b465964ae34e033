"""Match history store backed by the match_record table"""

from typing import List
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.match_record import MatchRecordModel
from domain.matching import (
    MatchHistoryStorePort,
    MatchRecord,
    PersistenceError,
    ValidationError,
)
from .errors import translate_database_errors


def match_record_to_domain(row: MatchRecordModel) -> MatchRecord:
    try:
        return MatchRecord(
            id=row.id,
            user_id_1=row.user_id_1,
            user_id_2=row.user_id_2,
            compatibility_score=row.compatibility_score,
            status=row.status,
            created_at=row.created_at,
            last_modified_at=row.last_modified_at,
            accepted_at=row.accepted_at,
            rejected_at=row.rejected_at,
        )
    except (ValueError, ValidationError) as e:
        raise PersistenceError(f"Stored match record {row.id} is invalid: {e}")


class SqlAlchemyMatchHistoryStore(MatchHistoryStorePort):
    """Read access to the match records a user takes part in."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_matches_for_user(self, user_id: UUID) -> List[MatchRecord]:
        query = (
            select(MatchRecordModel)
            .where(or_(MatchRecordModel.user_id_1 == user_id, MatchRecordModel.user_id_2 == user_id))
            .order_by(MatchRecordModel.created_at, MatchRecordModel.id)
        )
        with translate_database_errors("match history query"):
            result = await self.session.execute(query)
            rows = result.scalars().all()
        return [match_record_to_domain(row) for row in rows]

    async def add(self, record: MatchRecord) -> MatchRecord:
        """Insert a match record (seeding and tests)."""
        with translate_database_errors("match record insert"):
            self.session.add(MatchRecordModel(
                id=record.id,
                user_id_1=record.user_id_1,
                user_id_2=record.user_id_2,
                compatibility_score=record.compatibility_score,
                status=record.status.value,
                created_at=record.created_at,
                last_modified_at=record.last_modified_at,
                accepted_at=record.accepted_at,
                rejected_at=record.rejected_at,
            ))
            await self.session.flush()
        return record
