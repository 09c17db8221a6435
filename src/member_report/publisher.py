"""Render member records and commit them to the destination repository."""

from __future__ import annotations

import csv
import datetime as dt
import io
import json
import logging
import re
from typing import Any, List, Optional, Sequence, Tuple

from .config import ReportSettings
from .http_client import GitHubClient
from .records import CSV_COLUMNS, MemberRecord

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"(\d+)")


def natural_key(value: Any) -> Tuple[Tuple[int, int, str], ...]:
    """Case-insensitive sort key that orders digit runs numerically ("u2" < "u10")."""
    text = "" if value is None else str(value)
    parts = []
    for chunk in _DIGITS.split(text.casefold()):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk), ""))
        else:
            parts.append((1, 0, chunk))
    return tuple(parts)


def sort_records(records: Sequence[MemberRecord], field: str, order: str = "asc") -> List[MemberRecord]:
    """Return a new, stably sorted list ordered by one record field."""
    return sorted(
        records,
        key=lambda record: natural_key(getattr(record, field)),
        reverse=order == "desc",
    )


def render_csv(records: Sequence[MemberRecord]) -> str:
    """CSV with the fixed seven-column header; absent values become empty cells."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([label for _, label in CSV_COLUMNS])
    for record in records:
        row = [getattr(record, name) for name, _ in CSV_COLUMNS]
        writer.writerow(["" if value is None else value for value in row])
    return buffer.getvalue()


def render_json(records: Sequence[MemberRecord]) -> str:
    return json.dumps([record.as_dict() for record in records], indent=2, ensure_ascii=False)


def commit_message(now: dt.datetime) -> str:
    return f"{now.strftime('%Y-%m-%d')} Member email report"


def archive_path(settings: ReportSettings, now: dt.datetime) -> str:
    return f"{settings.archive_dir}/{settings.org}-{now.strftime('%Y-%m-%dT%H:%M:%SZ')}.csv"


def publish_file(client: GitHubClient,
                 settings: ReportSettings,
                 path: str,
                 content: str,
                 now: dt.datetime,
                 *,
                 lookup: bool = True) -> str:
    """Create or update one file; return "created" or "updated"."""
    sha: Optional[str] = None
    if lookup:
        sha = client.get_file_sha(settings.owner, settings.repo, path)
    client.put_file(
        settings.owner,
        settings.repo,
        path,
        content.encode("utf-8"),
        message=commit_message(now),
        committer={"name": settings.committer_name, "email": settings.committer_email},
        sha=sha,
    )
    action = "updated" if sha else "created"
    logger.info("%s %s/%s:%s", action, settings.owner, settings.repo, path)
    return action


def publish_reports(client: GitHubClient,
                    settings: ReportSettings,
                    records: Sequence[MemberRecord],
                    now: Optional[dt.datetime] = None) -> List[str]:
    """Sort, render and commit the CSV report plus its optional archive and JSON copies."""
    now = now or dt.datetime.now(dt.timezone.utc)
    ordered = sort_records(records, settings.sort_field, settings.sort_order)
    csv_text = render_csv(ordered)
    written: List[str] = []

    publish_file(client, settings, settings.report_path, csv_text, now)
    written.append(settings.report_path)

    if settings.archive_report:
        single = archive_path(settings, now)
        publish_file(client, settings, single, csv_text, now, lookup=False)
        written.append(single)

    if settings.json_export:
        publish_file(client, settings, settings.json_report_path, render_json(ordered), now)
        written.append(settings.json_report_path)

    return written


__all__ = [
    "natural_key",
    "sort_records",
    "render_csv",
    "render_json",
    "commit_message",
    "archive_path",
    "publish_file",
    "publish_reports",
]
