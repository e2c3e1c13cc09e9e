"""Lookup of recipient contact details."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.domain.entities import ContactInfo
from app.infrastructure.models import UserContactModel


class UserContactRepository:
    """Resolve email addresses and phone numbers from the ``user_contact`` table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_contact_info(self, user_id: int) -> ContactInfo:
        model = self.session.get(UserContactModel, user_id)
        if model is None:
            return ContactInfo()
        return ContactInfo(email=model.email or None, phone=model.phone or None)

    def save(self, user_id: int, *, email: str | None = None, phone: str | None = None) -> ContactInfo:
        model = self.session.get(UserContactModel, user_id) or UserContactModel(user_id=user_id)
        model.email = email
        model.phone = phone
        self.session.add(model)
        self.session.commit()
        return ContactInfo(email=email, phone=phone)


__all__ = ["UserContactRepository"]
