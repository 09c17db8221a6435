"""Central configuration for the member email report workflow."""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .records import MEMBER_FIELDS
from .secrets import load_local_secrets

USER_AGENT = "org-member-email-report/1.0"
BASE_URL = "https://api.github.com"
GRAPHQL_URL = "https://api.github.com/graphql"
API_VERSION = "2022-11-28"
PAGE_SIZE = 100
REQUEST_TIMEOUT = 90
REPORT_DIR = "reports"
ARCHIVE_DIR = "reports/single"
DEFAULT_COMMITTER_NAME = "github-actions"
DEFAULT_COMMITTER_EMAIL = "github-actions@github.com"
DEFAULT_SORT_FIELD = "userName"
DEFAULT_SORT_ORDER = "asc"
SORT_ORDERS = ("asc", "desc")

_TRUE_VALUES = {"true", "yes", "1", "on"}
_FALSE_VALUES = {"false", "no", "0", "off"}


class ConfigError(ValueError):
    """Raised when the run cannot be configured from the supplied inputs."""


@dataclass(frozen=True)
class ReportSettings:
    """Resolved runtime settings for one report run."""

    org: str
    owner: str
    repo: str
    token: Optional[str]
    app_id: Optional[str]
    private_key: Optional[str]
    installation_id: Optional[str]
    committer_name: str
    committer_email: str
    archive_report: bool
    archive_dir: str
    sort_field: str
    sort_order: str
    json_export: bool
    log_level: str = "INFO"

    @property
    def uses_app_auth(self) -> bool:
        return bool(self.app_id and self.private_key and self.installation_id)

    @property
    def report_path(self) -> str:
        return f"{REPORT_DIR}/{self.org}-member-email-report.csv"

    @property
    def json_report_path(self) -> str:
        return f"{REPORT_DIR}/{self.org}-member-email-report.json"


def parse_bool(value: Any, name: str = "value") -> bool:
    """Interpret true/false, yes/no, 1/0 and on/off (any case) as a boolean."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be true or false, got {value!r}")


def action_input(environ: Mapping[str, str], name: str) -> Optional[str]:
    """Return a GitHub Actions input (``INPUT_<NAME>``) or None when unset or blank."""
    value = environ.get(f"INPUT_{name.replace(' ', '_').upper()}", "")
    value = value.strip()
    return value or None


def load_event_payload(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Read the triggering event payload; return {} outside of a workflow run."""
    event_path = environ.get("GITHUB_EVENT_PATH")
    if not event_path or not Path(event_path).exists():
        return {}
    with open(event_path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    return data if isinstance(data, dict) else {}


def build_arg_parser() -> argparse.ArgumentParser:
    """Return the CLI parser used by the report entry point."""

    parser = argparse.ArgumentParser(
        description="Export GitHub organization members and their emails to a committed CSV report.",
    )
    parser.add_argument("--org", help="organization login (defaults to the event's organization)")
    parser.add_argument("--repo", help="destination repository as owner/name")
    parser.add_argument("--token", help="personal access token")
    parser.add_argument("--app-id")
    parser.add_argument("--private-key", help="GitHub App private key (PEM text or path to a PEM file)")
    parser.add_argument("--installation-id")
    parser.add_argument("--committer-name")
    parser.add_argument("--committer-email")
    parser.add_argument("--single-report", help="also write a timestamped copy (true/false)")
    parser.add_argument("--archive-dir")
    parser.add_argument("--sort", help=f"record field to sort by, one of {', '.join(MEMBER_FIELDS)}")
    parser.add_argument("--sort-order", help="asc or desc")
    parser.add_argument("--json", help="also publish a JSON report (true/false)")
    parser.add_argument("--log-level")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; accepts argv overrides for testing."""

    parser = build_arg_parser()
    return parser.parse_args(argv)


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


def _read_private_key(value: Optional[str]) -> Optional[str]:
    if not value or "-----BEGIN" in value:
        return value
    key_path = Path(value).expanduser()
    if key_path.is_file():
        return key_path.read_text(encoding="utf-8")
    return value


def _resolve_repository(args: argparse.Namespace,
                        environ: Mapping[str, str],
                        event: Dict[str, Any]) -> tuple[str, str]:
    if args.repo:
        full_name = args.repo
    else:
        repository = event.get("repository") or {}
        owner = (repository.get("owner") or {}).get("login")
        name = repository.get("name")
        if owner and name:
            return owner, name
        full_name = environ.get("GITHUB_REPOSITORY", "")

    owner, _, name = full_name.partition("/")
    if not owner or not name:
        raise ConfigError("destination repository unknown; pass --repo owner/name")
    return owner, name


def resolve_settings(args: Optional[argparse.Namespace] = None,
                     environ: Optional[Mapping[str, str]] = None,
                     secrets: Optional[Dict[str, Any]] = None) -> ReportSettings:
    """Merge CLI flags, workflow inputs, the event payload and local secrets."""

    args = args if args is not None else parse_args([])
    environ = environ if environ is not None else os.environ
    secrets = secrets if secrets is not None else load_local_secrets()
    app_secrets = secrets.get("github_app") or {}
    event = load_event_payload(environ)

    org = _first(args.org, action_input(environ, "org"),
                 (event.get("organization") or {}).get("login"))
    if not org:
        raise ConfigError("organization unknown; pass --org or run from an organization event")
    owner, repo = _resolve_repository(args, environ, event)

    token = _first(args.token, action_input(environ, "token"),
                   environ.get("GITHUB_TOKEN"), secrets.get("github_token"))
    app_id = _first(args.app_id, action_input(environ, "appid"), str(app_secrets.get("app_id") or ""))
    private_key = _read_private_key(
        _first(args.private_key, action_input(environ, "privatekey"), app_secrets.get("private_key"))
    )
    installation_id = _first(args.installation_id, action_input(environ, "installationid"),
                             str(app_secrets.get("installation_id") or ""))
    if not token and not (app_id and private_key and installation_id):
        raise ConfigError("no credentials; supply a token or app id, private key and installation id")

    sort_field = _first(args.sort, action_input(environ, "sort")) or DEFAULT_SORT_FIELD
    if sort_field not in MEMBER_FIELDS:
        raise ConfigError(f"sort must be one of {', '.join(MEMBER_FIELDS)}, got {sort_field!r}")
    sort_order = (_first(args.sort_order, action_input(environ, "sort-order")) or DEFAULT_SORT_ORDER).lower()
    if sort_order not in SORT_ORDERS:
        raise ConfigError(f"sort-order must be asc or desc, got {sort_order!r}")

    archive_raw = _first(args.single_report, action_input(environ, "single-report")) or "false"
    json_raw = _first(args.json, action_input(environ, "json")) or "false"

    return ReportSettings(
        org=org,
        owner=owner,
        repo=repo,
        token=token,
        app_id=app_id,
        private_key=private_key,
        installation_id=installation_id,
        committer_name=_first(args.committer_name, action_input(environ, "committer-name"))
        or DEFAULT_COMMITTER_NAME,
        committer_email=_first(args.committer_email, action_input(environ, "committer-email"))
        or DEFAULT_COMMITTER_EMAIL,
        archive_report=parse_bool(archive_raw, "single-report"),
        archive_dir=(_first(args.archive_dir, action_input(environ, "archive-dir")) or ARCHIVE_DIR).rstrip("/"),
        sort_field=sort_field,
        sort_order=sort_order,
        json_export=parse_bool(json_raw, "json"),
        log_level=(_first(args.log_level, environ.get("LOG_LEVEL")) or "INFO").upper(),
    )


__all__ = [
    "USER_AGENT",
    "BASE_URL",
    "GRAPHQL_URL",
    "API_VERSION",
    "PAGE_SIZE",
    "REQUEST_TIMEOUT",
    "REPORT_DIR",
    "ARCHIVE_DIR",
    "DEFAULT_COMMITTER_NAME",
    "DEFAULT_COMMITTER_EMAIL",
    "DEFAULT_SORT_FIELD",
    "DEFAULT_SORT_ORDER",
    "SORT_ORDERS",
    "ConfigError",
    "ReportSettings",
    "parse_bool",
    "action_input",
    "load_event_payload",
    "build_arg_parser",
    "parse_args",
    "resolve_settings",
]
