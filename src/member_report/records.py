"""Member record type and the fixed report column layout."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class MemberRecord:
    """One row of the member email report, keyed by ``userName``."""

    userName: str
    fullName: Optional[str] = None
    ssoEmail: Optional[str] = None
    publicEmail: Optional[str] = None
    verifiedEmail: str = ""
    updatedAt: Optional[str] = None
    createdAt: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


MEMBER_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(MemberRecord))

# Column order and header labels of the CSV report.
CSV_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("userName", "Username"),
    ("fullName", "Full name"),
    ("publicEmail", "Public email"),
    ("verifiedEmail", "Verified email"),
    ("ssoEmail", "SSO email"),
    ("updatedAt", "Updated"),
    ("createdAt", "Created"),
)


__all__ = ["MemberRecord", "MEMBER_FIELDS", "CSV_COLUMNS"]
