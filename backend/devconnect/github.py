"""Public repository lookup against the GitHub REST API."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from .config import Settings, get_settings
from .errors import InvalidReference, UpstreamFailure
from .telemetry import timed_event

logger = logging.getLogger(__name__)

NO_GITHUB_PROFILE_MESSAGE = "No Github profile found"
# GitHub logins: alphanumerics and single hyphens, at most 39 characters.
_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9]|-(?=[A-Za-z0-9])){0,38}$")


def _request_params(settings: Settings) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "per_page": settings.github_repo_limit,
        "sort": "created",
        "direction": "desc",
    }
    if settings.github_client_id and settings.github_client_secret:
        params["client_id"] = settings.github_client_id
        params["client_secret"] = settings.github_client_secret
    return params


async def fetch_recent_repos(
    username: str,
    *,
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> List[Dict[str, Any]]:
    """Return up to ``github_repo_limit`` of ``username``'s newest public repositories."""
    settings = settings or get_settings()
    login = username.strip()
    if not _USERNAME_PATTERN.match(login):
        raise InvalidReference(f"Malformed GitHub username: {username!r}")

    endpoint = f"{settings.github_api_url.rstrip('/')}/users/{login}/repos"
    headers = {"User-Agent": "devconnect", "Accept": "application/vnd.github+json"}
    local_client = client or httpx.AsyncClient(timeout=settings.github_timeout_seconds)
    close_client = client is None

    with timed_event("github_repos_lookup", username=login) as extra:
        try:
            response = await local_client.get(endpoint, params=_request_params(settings), headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("GitHub lookup for %s failed: %s", login, exc)
            raise UpstreamFailure(NO_GITHUB_PROFILE_MESSAGE) from exc
        finally:
            if close_client:
                await local_client.aclose()

        extra["upstream_status"] = response.status_code
        if response.status_code != httpx.codes.OK:
            raise UpstreamFailure(NO_GITHUB_PROFILE_MESSAGE, upstream_status=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFailure(NO_GITHUB_PROFILE_MESSAGE, upstream_status=response.status_code) from exc
        if not isinstance(payload, list):
            raise UpstreamFailure(NO_GITHUB_PROFILE_MESSAGE, upstream_status=response.status_code)

        repos = payload[: settings.github_repo_limit]
        extra["count"] = len(repos)
        return repos


__all__ = ["NO_GITHUB_PROFILE_MESSAGE", "fetch_recent_repos"]
