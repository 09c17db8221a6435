"""GitHub REST and GraphQL client scoped to a single report run."""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from .config import API_VERSION, BASE_URL, GRAPHQL_URL, REQUEST_TIMEOUT, USER_AGENT

logger = logging.getLogger(__name__)


class GitHubAPIError(RuntimeError):
    """GitHub answered with an error status or a GraphQL ``errors`` array."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(GitHubAPIError):
    """Credentials were rejected or lack the required permissions."""


class WriteConflictError(GitHubAPIError):
    """A contents write was refused because the file changed underneath us."""


def error_message(resp: requests.Response) -> str:
    """Extract GitHub's error message from a response body."""
    try:
        body = resp.json()
    except ValueError:
        body = {"text": (resp.text or "")[:300]}
    if not isinstance(body, dict):
        body = {"text": str(body)[:300]}
    return str(body.get("message") or body.get("error") or body.get("text") or "")


def log_http_error(resp: requests.Response, url: str) -> None:
    """Log a short, human-readable message when GitHub returns an error."""
    logger.error("HTTP %s for %s -> %s", resp.status_code, url, error_message(resp))


def raise_for_github_error(resp: requests.Response, url: str, *, write: bool = False) -> None:
    """Raise the matching GitHubAPIError for a non-2xx response."""
    status = resp.status_code
    if 200 <= status < 300:
        return
    log_http_error(resp, url)
    message = f"HTTP {status} for {url}: {error_message(resp)}"
    if status in (401, 403):
        raise AuthenticationError(message, status)
    if status == 409 or (write and status == 422):
        raise WriteConflictError(message, status)
    raise GitHubAPIError(message, status)


class GitHubClient:
    """Thin wrapper around the GitHub API holding one authenticated session."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = BASE_URL,
        graphql_url: str = GRAPHQL_URL,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.graphql_url = graphql_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "User-Agent": USER_AGENT,
                "X-GitHub-Api-Version": API_VERSION,
                "Authorization": f"Bearer {token}",
            }
        )

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def _contents_url(self, owner: str, repo: str, path: str) -> str:
        return f"{self.base_url}/repos/{owner}/{repo}/contents/{quote(path)}"

    def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a GraphQL query and return its ``data`` object."""
        resp = self.session.post(
            self.graphql_url,
            json={"query": query, "variables": variables},
            timeout=self.timeout,
        )
        raise_for_github_error(resp, self.graphql_url)
        payload = resp.json()
        if payload.get("errors"):
            messages = ", ".join(
                str(err.get("message")) for err in payload["errors"] if isinstance(err, dict)
            )
            raise GitHubAPIError(f"GraphQL error: {messages or payload['errors']}", resp.status_code)
        return payload.get("data") or {}

    def get_file_sha(self, owner: str, repo: str, path: str) -> Optional[str]:
        """Return the blob SHA of ``path`` or None when the file does not exist yet."""
        url = self._contents_url(owner, repo, path)
        resp = self.session.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        raise_for_github_error(resp, url)
        data = resp.json()
        if not isinstance(data, dict):
            # a directory listing, not a file
            return None
        return data.get("sha")

    def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: bytes,
        *,
        message: str,
        committer: Dict[str, str],
        sha: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create or update ``path`` with ``content`` as a single commit."""
        url = self._contents_url(owner, repo, path)
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "committer": committer,
        }
        if sha:
            body["sha"] = sha
        resp = self.session.put(url, json=body, timeout=self.timeout)
        raise_for_github_error(resp, url, write=True)
        return resp.json()


__all__ = [
    "GitHubAPIError",
    "AuthenticationError",
    "WriteConflictError",
    "GitHubClient",
    "error_message",
    "log_http_error",
    "raise_for_github_error",
]
