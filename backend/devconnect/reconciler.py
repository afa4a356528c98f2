"""Insert/update/delete decisions for the embedded experience and education lists.

Entries are matched on a natural key (``experience_key``/``education_key``).
A submission whose key matches an existing entry overwrites that entry in
place, keeping its identifier and position; anything else is inserted at the
head of the list so the most recent entries display first. Removal addresses
entries by their system-assigned identifier. All functions return new lists
and never mutate their input.
"""

from __future__ import annotations

import enum
import uuid
from typing import Callable, Hashable, List, Sequence, Tuple, TypeVar

from .errors import NotFound
from .profile_models import SubEntry

EntryT = TypeVar("EntryT", bound=SubEntry)


class Action(str, enum.Enum):
    INSERT = "insert"
    UPDATE = "update"


def new_entry_id() -> str:
    return uuid.uuid4().hex


def reconcile(
    entries: Sequence[EntryT],
    candidate: EntryT,
    natural_key: Callable[[EntryT], Hashable],
) -> Tuple[Action, int]:
    """Decide what submitting ``candidate`` does to ``entries``.

    Only the first entry carrying the candidate's key is considered, so
    pre-existing duplicates beyond it are left alone.
    """
    wanted = natural_key(candidate)
    for index, entry in enumerate(entries):
        if natural_key(entry) == wanted:
            return Action.UPDATE, index
    return Action.INSERT, 0


def apply_entry(
    entries: Sequence[EntryT],
    candidate: EntryT,
    natural_key: Callable[[EntryT], Hashable],
) -> Tuple[List[EntryT], Action, int]:
    action, index = reconcile(entries, candidate, natural_key)
    updated = list(entries)
    if action is Action.UPDATE:
        # Full overwrite: nothing from the old entry survives but its id.
        updated[index] = candidate.model_copy(update={"id": entries[index].id or new_entry_id()})
    else:
        updated.insert(0, candidate.model_copy(update={"id": new_entry_id()}))
    return updated, action, index


def remove_entry(entries: Sequence[EntryT], entry_id: str, *, label: str = "Entry") -> List[EntryT]:
    ids = [entry.id for entry in entries]
    try:
        index = ids.index(entry_id)
    except ValueError:
        raise NotFound(f"{label} id invalid", status_code=400) from None
    return [entry for position, entry in enumerate(entries) if position != index]


__all__ = [
    "Action",
    "apply_entry",
    "new_entry_id",
    "reconcile",
    "remove_entry",
]
