"""User account persistence."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import UserModel


def normalize_email(email: str) -> str:
    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("Email cannot be empty.")
    return normalized


class UserRepository:
    def get(self, session: Session, user_id: str) -> Optional[UserModel]:
        return session.get(UserModel, user_id)

    def get_by_email(self, session: Session, email: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.email == normalize_email(email))
        return session.execute(stmt).scalar_one_or_none()

    def create(self, session: Session, *, name: str, email: str, password_hash: str, avatar: str | None) -> UserModel:
        model = UserModel(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=password_hash,
            avatar=avatar,
        )
        session.add(model)
        session.flush()
        return model


user_repository = UserRepository()

__all__ = ["UserRepository", "normalize_email", "user_repository"]
