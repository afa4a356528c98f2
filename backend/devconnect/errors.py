"""Error taxonomy shared by the store, the routers and the exception handlers."""

from __future__ import annotations

from typing import Sequence


class ProfileServiceError(Exception):
    """Base class for errors that carry a client-facing message."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(ProfileServiceError):
    """A profile or an embedded entry does not exist."""

    status_code = 404

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class InvalidReference(ProfileServiceError):
    status_code = 400


class AuthError(ProfileServiceError):
    status_code = 401


class UpstreamFailure(ProfileServiceError):
    """The repository lookup upstream answered with a non-success."""

    status_code = 404

    def __init__(self, message: str, *, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class StorageFault(ProfileServiceError):
    """Persistence unavailable or a write failed. Never shown verbatim to clients."""

    status_code = 500


class CascadeDeleteError(StorageFault):
    def __init__(self, message: str, *, completed_steps: Sequence[str], failed_step: str) -> None:
        super().__init__(message)
        self.completed_steps = list(completed_steps)
        self.failed_step = failed_step


__all__ = [
    "AuthError",
    "CascadeDeleteError",
    "InvalidReference",
    "NotFound",
    "ProfileServiceError",
    "StorageFault",
    "UpstreamFailure",
]
