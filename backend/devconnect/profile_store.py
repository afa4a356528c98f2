"""Profile store facade: per-owner serialised read-modify-write over the repository."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .config import get_settings
from .db.session import session_scope
from .errors import CascadeDeleteError, NotFound, StorageFault
from .profile_models import (
    EducationFields,
    ExperienceFields,
    Profile,
    ProfileFields,
    SubEntry,
    education_key,
    experience_key,
)
from .reconciler import apply_entry, remove_entry
from .repositories.profiles import (
    ProfileRepository,
    SubListKind,
    profile_repository,
    require_identifier,
)
from .telemetry import emit_event, timed_event

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_PROFILE_MESSAGE = "There is no profile for this user"
CASCADE_STEPS = ("posts", "profile", "user")


class OwnerLockRegistry:
    """Hands out one lock per owner id.

    A lock lives until its owner's account is deleted.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def for_owner(self, owner_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(owner_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[owner_id] = lock
            return lock

    def discard(self, owner_id: str) -> None:
        with self._guard:
            self._locks.pop(owner_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class ProfileStore:
    """Owns the profile documents.

    Mutations for the same owner run one at a time under that owner's lock.
    Each profile row also carries a version column; a write against a stale
    version (from another process) is retried from a fresh read before it
    is reported as a storage fault.
    """

    def __init__(
        self,
        repository: Optional[ProfileRepository] = None,
        *,
        locks: Optional[OwnerLockRegistry] = None,
        retries: Optional[int] = None,
    ) -> None:
        self._repo = repository or profile_repository
        self._locks = locks or OwnerLockRegistry()
        self._retries = retries

    @property
    def retries(self) -> int:
        return self._retries if self._retries is not None else get_settings().mutation_retries

    # -- reads -----------------------------------------------------------

    def _read(self, operation: str, fn: Callable[[Session], T]) -> T:
        try:
            with session_scope(commit=False) as session:
                return fn(session)
        except SQLAlchemyError as exc:
            logger.exception("Storage failure during %s", operation)
            raise StorageFault(f"Storage failure during {operation}") from exc

    def get_own_profile(self, owner_id: str) -> Profile:
        def op(session: Session) -> Profile:
            model = self._repo.get_by_owner(session, owner_id)
            if model is None:
                raise NotFound(NO_PROFILE_MESSAGE)
            return self._repo.to_domain(model)

        return self._read("get_own_profile", op)

    def get_by_owner(self, owner_id: str) -> Profile:
        def op(session: Session) -> Profile:
            model = self._repo.get_by_owner(session, owner_id)
            if model is None:
                raise NotFound("Profile not found")
            return self._repo.to_domain(model)

        return self._read("get_by_owner", op)

    def get_by_id(self, profile_id: str) -> Profile:
        def op(session: Session) -> Profile:
            model = self._repo.get_by_id(session, profile_id)
            if model is None:
                raise NotFound("Profile not found")
            return self._repo.to_domain(model)

        return self._read("get_by_id", op)

    def list_all(self) -> List[Profile]:
        return self._read(
            "list_all",
            lambda session: [self._repo.to_domain(model) for model in self._repo.list_all(session)],
        )

    # -- mutations -------------------------------------------------------

    def _mutate(self, owner_id: str, operation: str, fn: Callable[[Session], T]) -> T:
        owner = require_identifier(owner_id, "owner id")
        attempts = self.retries
        with self._locks.for_owner(owner):
            for attempt in range(1, attempts + 1):
                try:
                    with session_scope() as session:
                        return fn(session)
                except (StaleDataError, IntegrityError) as exc:
                    emit_event(
                        "profile_mutation_retry",
                        operation=operation,
                        owner_id=owner,
                        attempt=attempt,
                        exception_type=exc.__class__.__name__,
                    )
                    logger.warning(
                        "Conflicting write during %s for %s (attempt %s/%s)",
                        operation,
                        owner,
                        attempt,
                        attempts,
                    )
                except SQLAlchemyError as exc:
                    logger.exception("Storage failure during %s for %s", operation, owner)
                    raise StorageFault(f"Storage failure during {operation}") from exc
        raise StorageFault(f"Gave up on {operation} after {attempts} conflicting writes")

    def upsert_profile(self, owner_id: str, fields: ProfileFields) -> Profile:
        scalars = fields.scalar_updates()
        social = fields.social_updates()

        with timed_event("profile_upsert", owner_id=owner_id) as extra:

            def op(session: Session) -> Profile:
                model, created = self._repo.upsert_fields(session, owner_id, scalars, social)
                extra["created"] = created
                return self._repo.to_domain(model)

            return self._mutate(owner_id, "upsert_profile", op)

    def _put_entry(
        self,
        owner_id: str,
        kind: SubListKind,
        candidate: SubEntry,
        natural_key: Callable,
    ) -> Profile:
        with timed_event("profile_entry_upsert", owner_id=owner_id, kind=kind) as extra:

            def op(session: Session) -> Profile:
                model = self._repo.get_by_owner(session, owner_id)
                if model is None:
                    raise NotFound(NO_PROFILE_MESSAGE)
                entries = self._repo.load_sublist(model, kind)
                updated, action, index = apply_entry(entries, candidate, natural_key)
                self._repo.replace_sublist(session, model, kind, updated)
                extra.update(action=action.value, index=index, size=len(updated))
                return self._repo.to_domain(model)

            return self._mutate(owner_id, f"put_{kind}", op)

    def _remove_entry(self, owner_id: str, kind: SubListKind, entry_id: str, label: str) -> Profile:
        with timed_event("profile_entry_remove", owner_id=owner_id, kind=kind, entry_id=entry_id) as extra:

            def op(session: Session) -> Profile:
                model = self._repo.get_by_owner(session, owner_id)
                if model is None:
                    raise NotFound(NO_PROFILE_MESSAGE)
                entries = self._repo.load_sublist(model, kind)
                remaining = remove_entry(entries, entry_id, label=label)
                self._repo.replace_sublist(session, model, kind, remaining)
                extra["size"] = len(remaining)
                return self._repo.to_domain(model)

            return self._mutate(owner_id, f"delete_{kind}", op)

    def put_experience(self, owner_id: str, fields: ExperienceFields) -> Profile:
        return self._put_entry(owner_id, "experience", fields.to_entry(), experience_key)

    def put_education(self, owner_id: str, fields: EducationFields) -> Profile:
        return self._put_entry(owner_id, "education", fields.to_entry(), education_key)

    def delete_experience(self, owner_id: str, entry_id: str) -> Profile:
        return self._remove_entry(owner_id, "experience", entry_id, "Experience")

    def delete_education(self, owner_id: str, entry_id: str) -> Profile:
        return self._remove_entry(owner_id, "education", entry_id, "Education")

    def delete_profile(self, owner_id: str) -> List[str]:
        """Remove the owner's posts, profile and account, in that order.

        Each step commits on its own. A failing step stops the sequence and
        raises CascadeDeleteError naming what already completed.
        """
        owner = require_identifier(owner_id, "owner id")
        steps = {
            "posts": self._repo.delete_posts,
            "profile": self._repo.delete_profile,
            "user": self._repo.delete_user,
        }
        completed: List[str] = []
        with self._locks.for_owner(owner):
            for name in CASCADE_STEPS:
                try:
                    with session_scope() as session:
                        steps[name](session, owner)
                except SQLAlchemyError as exc:
                    logger.exception(
                        "Cascading delete for %s failed at %s after %s",
                        owner,
                        name,
                        completed or "no steps",
                    )
                    emit_event(
                        "profile_delete",
                        owner_id=owner,
                        status="partial" if completed else "failed",
                        completed_steps=completed,
                        failed_step=name,
                    )
                    raise CascadeDeleteError(
                        f"Cascading delete stopped at {name}",
                        completed_steps=completed,
                        failed_step=name,
                    ) from exc
                completed.append(name)
        self._locks.discard(owner)
        emit_event("profile_delete", owner_id=owner, status="success", completed_steps=completed)
        return completed


profile_store = ProfileStore()

__all__ = [
    "CASCADE_STEPS",
    "NO_PROFILE_MESSAGE",
    "OwnerLockRegistry",
    "ProfileStore",
    "profile_store",
]
