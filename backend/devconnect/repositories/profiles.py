"""Database-backed profile repository.

Every method works inside a caller-supplied session; committing, locking and
retrying belong to :mod:`devconnect.profile_store`.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, joinedload

from ..db.base import as_utc
from ..db.models import PostModel, ProfileModel, UserModel
from ..errors import InvalidReference, NotFound
from ..profile_models import (
    Education,
    Experience,
    Profile,
    ProfileOwner,
    SubEntry,
)

SubListKind = Literal["experience", "education"]


def require_identifier(value: str, label: str = "identifier") -> str:
    """Return ``value`` normalised, or raise InvalidReference if it is not a UUID."""
    try:
        return str(uuid.UUID(str(value).strip()))
    except (ValueError, AttributeError):
        raise InvalidReference(f"Malformed {label}: {value!r}") from None


def dump_entries(entries: Sequence[SubEntry]) -> List[Dict[str, Any]]:
    return [entry.model_dump(mode="json", by_alias=True) for entry in entries]


class ProfileRepository:
    def get_by_owner(self, session: Session, owner_id: str) -> Optional[ProfileModel]:
        normalized = require_identifier(owner_id, "owner id")
        stmt = (
            select(ProfileModel)
            .options(joinedload(ProfileModel.owner))
            .where(ProfileModel.owner_id == normalized)
        )
        return session.execute(stmt).scalar_one_or_none()

    def get_by_id(self, session: Session, profile_id: str) -> Optional[ProfileModel]:
        normalized = require_identifier(profile_id, "profile id")
        stmt = (
            select(ProfileModel)
            .options(joinedload(ProfileModel.owner))
            .where(ProfileModel.id == normalized)
        )
        return session.execute(stmt).scalar_one_or_none()

    def list_all(self, session: Session) -> List[ProfileModel]:
        stmt = (
            select(ProfileModel)
            .options(joinedload(ProfileModel.owner))
            .order_by(ProfileModel.created_at.asc(), ProfileModel.id.asc())
        )
        return list(session.execute(stmt).scalars().all())

    def upsert_fields(
        self,
        session: Session,
        owner_id: str,
        scalars: Dict[str, Any],
        social: Dict[str, str],
    ) -> Tuple[ProfileModel, bool]:
        """Merge ``scalars`` and ``social`` into the owner's profile, creating it if needed."""
        model = self.get_by_owner(session, owner_id)
        created = model is None
        if model is None:
            owner = session.get(UserModel, require_identifier(owner_id, "owner id"))
            if owner is None:
                raise NotFound("User not found")
            model = ProfileModel(
                owner_id=owner.id,
                owner=owner,
                skills=[],
                social={},
                experience=[],
                education=[],
            )
            session.add(model)

        for field, value in scalars.items():
            setattr(model, field, value)
        if social:
            merged = dict(model.social or {})
            merged.update(social)
            model.social = merged
        session.flush()
        return model, created

    def replace_sublist(
        self,
        session: Session,
        model: ProfileModel,
        kind: SubListKind,
        entries: Sequence[SubEntry],
    ) -> ProfileModel:
        setattr(model, kind, dump_entries(entries))
        session.flush()
        return model

    def load_sublist(self, model: ProfileModel, kind: SubListKind) -> List[SubEntry]:
        entry_type = Experience if kind == "experience" else Education
        return [entry_type.model_validate(raw) for raw in getattr(model, kind) or []]

    def delete_posts(self, session: Session, owner_id: str) -> int:
        normalized = require_identifier(owner_id, "owner id")
        result = session.execute(delete(PostModel).where(PostModel.owner_id == normalized))
        return int(result.rowcount or 0)

    def delete_profile(self, session: Session, owner_id: str) -> bool:
        model = self.get_by_owner(session, owner_id)
        if model is None:
            return False
        session.delete(model)
        session.flush()
        return True

    def delete_user(self, session: Session, owner_id: str) -> bool:
        user = session.get(UserModel, require_identifier(owner_id, "owner id"))
        if user is None:
            return False
        session.delete(user)
        session.flush()
        return True

    def to_domain(self, model: ProfileModel) -> Profile:
        owner = model.owner
        return Profile(
            id=model.id,
            owner=ProfileOwner(
                id=model.owner_id,
                name=owner.name if owner else "",
                avatar=owner.avatar if owner else None,
            ),
            company=model.company,
            website=model.website,
            location=model.location,
            bio=model.bio,
            status=model.status,
            githubusername=model.githubusername,
            skills=list(model.skills or []),
            social={key: value for key, value in (model.social or {}).items() if value},
            experience=[Experience.model_validate(raw) for raw in model.experience or []],
            education=[Education.model_validate(raw) for raw in model.education or []],
            date=as_utc(model.created_at),
            version=model.version,
        )


profile_repository = ProfileRepository()

__all__ = ["ProfileRepository", "SubListKind", "dump_entries", "profile_repository", "require_identifier"]
