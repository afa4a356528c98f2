"""Profile REST endpoints: the caller's own document, public reads, and sub-list edits."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from .auth import get_current_owner
from .errors import InvalidReference, NotFound
from .github import fetch_recent_repos
from .profile_models import EducationFields, ExperienceFields, Profile, ProfileFields
from .profile_store import profile_store

router = APIRouter(prefix="/api/profile", tags=["profile"])
logger = logging.getLogger(__name__)

PROFILE_RESPONSE = {
    "response_model": Profile,
    "response_model_exclude_none": True,
    "response_model_by_alias": True,
    "status_code": status.HTTP_200_OK,
}


@router.get("/me", **PROFILE_RESPONSE)
def get_own_profile(owner_id: str = Depends(get_current_owner)) -> Profile:
    return profile_store.get_own_profile(owner_id)


@router.post("", **PROFILE_RESPONSE)
@router.put("", **PROFILE_RESPONSE)
def upsert_profile(payload: ProfileFields, owner_id: str = Depends(get_current_owner)) -> Profile:
    return profile_store.upsert_profile(owner_id, payload)


@router.get(
    "",
    response_model=List[Profile],
    response_model_exclude_none=True,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
)
def list_profiles() -> List[Profile]:
    return profile_store.list_all()


@router.get("/user/{owner_id}", **PROFILE_RESPONSE)
def get_profile_by_owner(owner_id: str) -> Profile:
    try:
        return profile_store.get_by_owner(owner_id)
    except InvalidReference:
        raise NotFound("Profile not found") from None


@router.delete("", status_code=status.HTTP_200_OK)
def delete_profile(owner_id: str = Depends(get_current_owner)) -> Dict[str, Any]:
    completed = profile_store.delete_profile(owner_id)
    logger.info("Deleted account %s (%s)", owner_id, ", ".join(completed))
    return {"msg": "User deleted"}


@router.put("/experience", **PROFILE_RESPONSE)
def put_experience(payload: ExperienceFields, owner_id: str = Depends(get_current_owner)) -> Profile:
    return profile_store.put_experience(owner_id, payload)


@router.delete("/experience/{exp_id}", **PROFILE_RESPONSE)
def delete_experience(exp_id: str, owner_id: str = Depends(get_current_owner)) -> Profile:
    return profile_store.delete_experience(owner_id, exp_id)


@router.put("/education", **PROFILE_RESPONSE)
def put_education(payload: EducationFields, owner_id: str = Depends(get_current_owner)) -> Profile:
    return profile_store.put_education(owner_id, payload)


@router.delete("/education/{edu_id}", **PROFILE_RESPONSE)
def delete_education(edu_id: str, owner_id: str = Depends(get_current_owner)) -> Profile:
    return profile_store.delete_education(owner_id, edu_id)


@router.get("/github/{username}", status_code=status.HTTP_200_OK)
async def get_github_repos(username: str) -> List[Dict[str, Any]]:
    return await fetch_recent_repos(username)


__all__ = ["router"]
