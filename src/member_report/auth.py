"""Token selection: personal access token or GitHub App installation token."""

from __future__ import annotations

import logging
import time
from typing import Optional

import jwt
import requests

from .config import BASE_URL, REQUEST_TIMEOUT, USER_AGENT, ReportSettings
from .http_client import GitHubClient, raise_for_github_error

logger = logging.getLogger(__name__)

# GitHub rejects app JWTs that live longer than ten minutes.
JWT_TTL_SEC = 540
JWT_CLOCK_SKEW_SEC = 60


def create_app_jwt(app_id: str, private_key: str, now: Optional[int] = None) -> str:
    """Sign the short-lived RS256 JWT a GitHub App authenticates with."""
    issued = int(now if now is not None else time.time())
    payload = {
        "iat": issued - JWT_CLOCK_SKEW_SEC,
        "exp": issued + JWT_TTL_SEC,
        "iss": str(app_id),
    }
    return jwt.encode(payload, private_key, algorithm="RS256")


def fetch_installation_token(app_id: str,
                             private_key: str,
                             installation_id: str,
                             *,
                             base_url: str = BASE_URL,
                             session: Optional[requests.Session] = None) -> str:
    """Exchange app credentials for an installation access token."""
    url = f"{base_url.rstrip('/')}/app/installations/{installation_id}/access_tokens"
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": USER_AGENT,
        "Authorization": f"Bearer {create_app_jwt(app_id, private_key)}",
    }
    http = session or requests
    resp = http.post(url, headers=headers, timeout=REQUEST_TIMEOUT)
    raise_for_github_error(resp, url)
    return resp.json()["token"]


def resolve_token(settings: ReportSettings) -> str:
    """Prefer complete app credentials, otherwise fall back to the token."""
    if settings.uses_app_auth:
        logger.info("authenticating as GitHub App %s (installation %s)",
                    settings.app_id, settings.installation_id)
        return fetch_installation_token(
            settings.app_id, settings.private_key, settings.installation_id
        )
    logger.info("authenticating with a personal access token")
    return settings.token or ""


def build_client(settings: ReportSettings) -> GitHubClient:
    """Return a client authenticated for this run."""
    return GitHubClient(resolve_token(settings))


__all__ = [
    "JWT_TTL_SEC",
    "create_app_jwt",
    "fetch_installation_token",
    "resolve_token",
    "build_client",
]
