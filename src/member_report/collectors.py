"""Organization member collection over the GitHub GraphQL API.

Members are enumerated one of two ways, chosen once per run:

* SSO organizations list ``samlIdentityProvider.externalIdentities``; each
  edge carries the federated ``nameId`` plus the linked GitHub user (which may
  be missing for identities that were never linked).
* Other organizations list ``membersWithRole``; each edge is the user itself.

Both shapes are wrapped as an entry variant and normalized into the same
``MemberRecord``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type, Union

from .config import PAGE_SIZE
from .http_client import GitHubAPIError, GitHubClient
from .records import MemberRecord

logger = logging.getLogger(__name__)


SSO_STATUS_QUERY = """
query SsoStatus($org: String!) {
  organization(login: $org) {
    samlIdentityProvider {
      id
    }
  }
}
"""

SSO_MEMBERS_QUERY = """
query SsoMembers($org: String!, $cursor: String, $pageSize: Int!) {
  organization(login: $org) {
    samlIdentityProvider {
      externalIdentities(first: $pageSize, after: $cursor) {
        edges {
          node {
            samlIdentity {
              nameId
            }
            user {
              login
              name
              email
              createdAt
              updatedAt
              organizationVerifiedDomainEmails(login: $org)
            }
          }
        }
        pageInfo {
          hasNextPage
          endCursor
        }
      }
    }
  }
}
"""

PLAIN_MEMBERS_QUERY = """
query PlainMembers($org: String!, $cursor: String, $pageSize: Int!) {
  organization(login: $org) {
    membersWithRole(first: $pageSize, after: $cursor) {
      edges {
        node {
          login
          name
          email
          organizationVerifiedDomainEmails(login: $org)
          updatedAt
          createdAt
        }
      }
      pageInfo {
        hasNextPage
        endCursor
      }
    }
  }
}
"""


def _text(value: Optional[str]) -> Optional[str]:
    return value or None


def _date(value: Optional[str]) -> Optional[str]:
    """Truncate an ISO-8601 timestamp to its calendar date."""
    return value[:10] if value else None


def _joined(emails: Optional[List[str]]) -> str:
    return ", ".join(e for e in (emails or []) if e)


def _user_record(user: Dict[str, Any], sso_email: Optional[str] = None) -> Optional[MemberRecord]:
    login = user.get("login")
    if not login:
        return None
    return MemberRecord(
        userName=login,
        fullName=_text(user.get("name")),
        ssoEmail=_text(sso_email),
        publicEmail=_text(user.get("email")),
        verifiedEmail=_joined(user.get("organizationVerifiedDomainEmails")),
        updatedAt=_date(user.get("updatedAt")),
        createdAt=_date(user.get("createdAt")),
    )


@dataclass(frozen=True)
class SsoEntry:
    """One ``externalIdentities`` node."""

    node: Dict[str, Any]

    def to_record(self) -> Optional[MemberRecord]:
        user = self.node.get("user")
        if not user:
            return None
        sso_email = (self.node.get("samlIdentity") or {}).get("nameId")
        return _user_record(user, sso_email)


@dataclass(frozen=True)
class PlainEntry:
    """One ``membersWithRole`` node."""

    node: Dict[str, Any]

    def to_record(self) -> Optional[MemberRecord]:
        return _user_record(self.node)


MemberEntry = Union[SsoEntry, PlainEntry]


def normalize_entry(entry: MemberEntry) -> Optional[MemberRecord]:
    """Return the record for an entry, or None when it has no login."""
    return entry.to_record()


def _organization(data: Dict[str, Any], org: str) -> Dict[str, Any]:
    organization = data.get("organization")
    if not organization:
        raise GitHubAPIError(f"organization {org!r} not found or not visible to these credentials")
    return organization


def _sso_connection(data: Dict[str, Any], org: str) -> Dict[str, Any]:
    provider = _organization(data, org).get("samlIdentityProvider")
    if not provider:
        raise GitHubAPIError(f"organization {org!r} has no SAML identity provider")
    return provider.get("externalIdentities") or {}


def _plain_connection(data: Dict[str, Any], org: str) -> Dict[str, Any]:
    return _organization(data, org).get("membersWithRole") or {}


def paginate_members(client: GitHubClient,
                     org: str,
                     query: str,
                     connection: Callable[[Dict[str, Any], str], Dict[str, Any]],
                     entry_type: Type[MemberEntry],
                     *,
                     page_size: int = PAGE_SIZE) -> List[MemberRecord]:
    """Drain a member connection page by page, normalizing entries as they arrive."""
    records: List[MemberRecord] = []
    cursor: Optional[str] = None
    page = 0
    while True:
        data = client.graphql(query, {"org": org, "cursor": cursor, "pageSize": page_size})
        conn = connection(data, org)
        page += 1

        for edge in conn.get("edges") or []:
            node = (edge or {}).get("node")
            record = normalize_entry(entry_type(node)) if node else None
            if record is None:
                logger.debug("skipping %s without a login on page %d", entry_type.__name__, page)
                continue
            logger.debug("collected %s", record.userName)
            records.append(record)

        page_info = conn.get("pageInfo") or {}
        if not page_info.get("hasNextPage"):
            break
        cursor = page_info.get("endCursor")
        if not cursor:
            raise GitHubAPIError(f"page {page} reported more results without an end cursor")

    logger.info("collected %d members of %s across %d page(s)", len(records), org, page)
    return records


def collect_sso_members(client: GitHubClient, org: str, *, page_size: int = PAGE_SIZE) -> List[MemberRecord]:
    """Return members of an SSO organization from its external identities."""
    return paginate_members(client, org, SSO_MEMBERS_QUERY, _sso_connection, SsoEntry,
                            page_size=page_size)


def collect_plain_members(client: GitHubClient, org: str, *, page_size: int = PAGE_SIZE) -> List[MemberRecord]:
    """Return members of an organization without SSO."""
    return paginate_members(client, org, PLAIN_MEMBERS_QUERY, _plain_connection, PlainEntry,
                            page_size=page_size)


def detect_sso(client: GitHubClient, org: str) -> bool:
    """True when the organization has a SAML identity provider configured."""
    data = client.graphql(SSO_STATUS_QUERY, {"org": org})
    enabled = bool(_organization(data, org).get("samlIdentityProvider"))
    logger.info("%s: SSO %s, collecting %s", org, "enabled" if enabled else "disabled",
                "external identities" if enabled else "organization members")
    return enabled


def fetch_members(client: GitHubClient, org: str, *, page_size: int = PAGE_SIZE) -> List[MemberRecord]:
    """Select the collection mode once, then drain the matching paginator."""
    if detect_sso(client, org):
        return collect_sso_members(client, org, page_size=page_size)
    return collect_plain_members(client, org, page_size=page_size)


__all__ = [
    "SSO_STATUS_QUERY",
    "SSO_MEMBERS_QUERY",
    "PLAIN_MEMBERS_QUERY",
    "SsoEntry",
    "PlainEntry",
    "MemberEntry",
    "normalize_entry",
    "paginate_members",
    "collect_sso_members",
    "collect_plain_members",
    "detect_sso",
    "fetch_members",
]
