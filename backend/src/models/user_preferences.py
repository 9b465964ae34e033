"""User preferences SQLAlchemy model."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, Uuid

from .base import Base, PortableJSONB


def _utcnow():
    return datetime.now(timezone.utc)


class UserPreferencesModel(Base):
    """Learned matching preferences, one row per user."""
    __tablename__ = "user_preferences"

    id = Column(Uuid, primary_key=True)
    user_id = Column(Uuid, nullable=False, unique=True)

    interest_weights = Column(PortableJSONB, nullable=False, default=dict)  # tag -> 0..1
    personality_trait_preferences = Column(PortableJSONB, nullable=False, default=dict)  # trait -> -1..1

    match_acceptance_count = Column(Integer, nullable=False, default=0)
    match_rejection_count = Column(Integer, nullable=False, default=0)
    average_accepted_compatibility_score = Column(Float, nullable=False, default=0.0)

    learning_session_count = Column(Integer, nullable=False, default=0)
    last_learning_session_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<UserPreferencesModel(user_id={self.user_id}, sessions={self.learning_session_count})>"
