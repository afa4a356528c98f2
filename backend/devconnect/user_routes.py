"""Account registration and token issuance."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.exc import IntegrityError

from .auth import create_access_token, get_current_owner, gravatar_url, hash_password, verify_password
from .db.base import as_utc
from .db.session import session_scope
from .errors import AuthError
from .repositories.users import user_repository

router = APIRouter(prefix="/api", tags=["accounts"])
logger = logging.getLogger(__name__)


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserPayload(BaseModel):
    id: str
    name: str
    email: str
    avatar: Optional[str] = None
    date: datetime


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


@router.post("/users", status_code=status.HTTP_200_OK)
def register_user(payload: RegisterRequest) -> Dict[str, str]:
    email = str(payload.email)
    try:
        with session_scope() as session:
            if user_repository.get_by_email(session, email) is not None:
                raise _bad_request("User already exists")
            user = user_repository.create(
                session,
                name=payload.name,
                email=email,
                password_hash=hash_password(payload.password),
                avatar=gravatar_url(email),
            )
            user_id = user.id
    except IntegrityError:
        raise _bad_request("User already exists") from None
    logger.info("Registered user %s", user_id)
    return {"token": create_access_token(user_id)}


@router.post("/auth", status_code=status.HTTP_200_OK)
def login(payload: LoginRequest) -> Dict[str, str]:
    with session_scope(commit=False) as session:
        user = user_repository.get_by_email(session, str(payload.email))
        if user is None or not verify_password(user.password_hash, payload.password):
            raise _bad_request("Invalid credentials")
        user_id = user.id
    return {"token": create_access_token(user_id)}


@router.get("/auth", response_model=UserPayload, response_model_exclude_none=True)
def current_user(owner_id: str = Depends(get_current_owner)) -> UserPayload:
    with session_scope(commit=False) as session:
        user = user_repository.get(session, owner_id)
        if user is None:
            raise AuthError("Token is not valid")
        return UserPayload(
            id=user.id,
            name=user.name,
            email=user.email,
            avatar=user.avatar,
            date=as_utc(user.created_at),
        )


__all__ = ["router"]
