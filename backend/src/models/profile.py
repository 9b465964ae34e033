"""Profile SQLAlchemy model.

Read-only from the matching engine's point of view; rows are written by the
profile subsystem.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, Text, Uuid

from .base import Base, PortableJSONB


class ProfileModel(Base):
    """Dating profile row.

    interest_tags and accepted_genders are stored as JSON lists of
    normalized strings.
    """
    __tablename__ = "profile"

    id = Column(Uuid, primary_key=True)
    display_name = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    occupation = Column(Text, nullable=True)

    interest_tags = Column(PortableJSONB, nullable=False, default=list)
    gender_identity = Column(Text, nullable=False)
    accepted_genders = Column(PortableJSONB, nullable=False, default=list)

    age = Column(Integer, nullable=True)
    min_age = Column(Integer, nullable=True)
    max_age = Column(Integer, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<ProfileModel(id={self.id}, display_name='{self.display_name}')>"
