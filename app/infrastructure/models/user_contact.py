"""SQLAlchemy model for the contact details mirrored from the identity service."""

from sqlalchemy import Column, DateTime, Integer, String

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class UserContactModel(Base):
    """Email address and phone number known for a user."""

    __tablename__ = "user_contact"

    user_id = Column(Integer, primary_key=True)
    email = Column(String(120), nullable=True)
    phone = Column(String(32), nullable=True)
    updated_at = Column(
        DateTime(),
        nullable=False,
        default=now_in_app_naive_datetime,
        onupdate=now_in_app_naive_datetime,
    )


__all__ = ["UserContactModel"]
