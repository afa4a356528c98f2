"""ORM models backing the DevConnect persistence layer."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


def _new_id() -> str:
    return str(uuid.uuid4())


class UserModel(TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (Index("ix_users_email", "email", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    profile: Mapped[Optional["ProfileModel"]] = relationship(back_populates="owner", uselist=False)


class ProfileModel(TimestampMixin, Base):
    """One document per owner; the two sub-lists live in JSON columns."""

    __tablename__ = "profiles"
    __table_args__ = (Index("ix_profiles_owner_id", "owner_id", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(255), nullable=False)
    githubusername: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    skills: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    social: Mapped[dict[str, str]] = mapped_column(JSONType, default=dict, nullable=False)
    experience: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    education: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    owner: Mapped[UserModel] = relationship(back_populates="profile")

    __mapper_args__ = {"version_id_col": version}


class PostModel(TimestampMixin, Base):
    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)


__all__ = [
    "PostModel",
    "ProfileModel",
    "UserModel",
]
