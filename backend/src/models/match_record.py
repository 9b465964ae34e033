"""Match record SQLAlchemy model."""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, Text, Uuid

from .base import Base


def _utcnow():
    return datetime.now(timezone.utc)


class MatchRecordModel(Base):
    """Proposed pairing between two users.

    Rows are never deleted; status moves from pending to accepted or
    rejected.
    """
    __tablename__ = "match_record"
    __table_args__ = (
        CheckConstraint("user_id_1 <> user_id_2", name="ck_match_record_distinct_users"),
        CheckConstraint(
            "compatibility_score >= 0 AND compatibility_score <= 100",
            name="ck_match_record_score_range"
        ),
        Index("ix_match_record_user_id_1", "user_id_1"),
        Index("ix_match_record_user_id_2", "user_id_2"),
    )

    id = Column(Uuid, primary_key=True)
    user_id_1 = Column(Uuid, nullable=False)
    user_id_2 = Column(Uuid, nullable=False)
    compatibility_score = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, default="pending")  # pending, accepted, rejected

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_modified_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<MatchRecordModel(id={self.id}, status='{self.status}')>"
