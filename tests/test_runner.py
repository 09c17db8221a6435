"""Tests for member_report.runner ensuring orchestration flows through dependencies.

Run with:
    pytest tests/test_runner.py --maxfail=1 -v --cov=member_report.runner --cov-report=term-missing
"""

import base64
import csv
import io
import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from member_report import runner
from member_report.config import ConfigError, ReportSettings
from member_report.http_client import GitHubClient


@pytest.fixture(autouse=True)
def restore_package_logger():
    logger = logging.getLogger("member_report")
    saved = (logger.level, list(logger.handlers), logger.propagate)
    yield
    logger.setLevel(saved[0])
    logger.handlers[:] = saved[1]
    logger.propagate = saved[2]


def _settings(**overrides) -> ReportSettings:
    values = dict(
        org="acme", owner="acme", repo="org-reports", token="pat",
        app_id=None, private_key=None, installation_id=None,
        committer_name="github-actions", committer_email="github-actions@github.com",
        archive_report=False, archive_dir="reports/single",
        sort_field="userName", sort_order="asc", json_export=False,
    )
    values.update(overrides)
    return ReportSettings(**values)


def _resp(status, payload):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    resp.text = json.dumps(payload)
    return resp


def _sso_org_session(existing_sha=None):
    """A fake session for an SSO org with two federated identities."""
    session = MagicMock()
    session.headers = {}
    identities = {
        "edges": [
            {"node": {
                "samlIdentity": {"nameId": "zed@idp.example"},
                "user": {
                    "login": "zed", "name": "Zed", "email": "",
                    "organizationVerifiedDomainEmails": ["zed@acme.example"],
                    "updatedAt": "2024-02-02T10:00:00Z", "createdAt": "2020-01-01T10:00:00Z",
                },
            }},
            {"node": {
                "samlIdentity": {"nameId": "amy@idp.example"},
                "user": {
                    "login": "amy", "name": None, "email": "amy@example.com",
                    "organizationVerifiedDomainEmails": [],
                    "updatedAt": "2024-03-03T10:00:00Z", "createdAt": "2021-01-01T10:00:00Z",
                },
            }},
        ],
        "pageInfo": {"hasNextPage": False, "endCursor": None},
    }
    session.post.side_effect = [
        _resp(200, {"data": {"organization": {"samlIdentityProvider": {"id": "idp"}}}}),
        _resp(200, {"data": {"organization": {"samlIdentityProvider": {"externalIdentities": identities}}}}),
    ]
    if existing_sha:
        session.get.return_value = _resp(200, {"sha": existing_sha})
    else:
        session.get.return_value = _resp(404, {"message": "Not Found"})
    session.put.return_value = _resp(201, {"content": {"sha": "new"}})
    return session


def test_run_report_end_to_end_sso_org():
    session = _sso_org_session()
    with patch("member_report.runner.build_client", return_value=GitHubClient("pat", session=session)):
        written = runner.run_report(_settings())

    assert written == ["reports/acme-member-email-report.csv"]
    body = session.put.call_args.kwargs["json"]
    assert "sha" not in body
    rows = list(csv.reader(io.StringIO(base64.b64decode(body["content"]).decode("utf-8"))))
    assert rows[0] == ["Username", "Full name", "Public email", "Verified email", "SSO email", "Updated", "Created"]
    assert rows[1] == ["amy", "", "amy@example.com", "", "amy@idp.example", "2024-03-03", "2021-01-01"]
    assert rows[2] == ["zed", "Zed", "", "zed@acme.example", "zed@idp.example", "2024-02-02", "2020-01-01"]
    assert all(len(row) == 7 for row in rows)
    session.close.assert_called_once()


def test_run_report_updates_existing_file_with_its_sha():
    session = _sso_org_session(existing_sha="old-sha")
    with patch("member_report.runner.build_client", return_value=GitHubClient("pat", session=session)):
        runner.run_report(_settings())
    assert session.put.call_args.kwargs["json"]["sha"] == "old-sha"


@patch("member_report.runner.publish_reports", return_value=["reports/acme-member-email-report.csv"])
@patch("member_report.runner.fetch_members", return_value=[])
@patch("member_report.runner.build_client")
def test_run_report_invokes_all_dependencies(mock_build, mock_fetch, mock_publish):
    settings = _settings()
    client = mock_build.return_value.__enter__.return_value
    runner.run_report(settings)
    mock_fetch.assert_called_once_with(client, "acme")
    mock_publish.assert_called_once_with(client, settings, [])


def test_main_success(monkeypatch):
    called = []
    monkeypatch.setattr(runner, "resolve_settings", lambda args: _settings())
    monkeypatch.setattr(runner, "run_report", lambda settings: called.append(settings.org))
    runner.main(["--org", "acme"])
    assert called == ["acme"]


def test_main_marks_run_failed(monkeypatch, capsys):
    def boom(args):
        raise ConfigError("organization unknown\nsecond line")

    monkeypatch.setattr(runner, "resolve_settings", boom)
    with pytest.raises(SystemExit) as excinfo:
        runner.main([])
    assert excinfo.value.code == 1
    assert "::error::organization unknown%0Asecond line" in capsys.readouterr().out


def test_configure_logging_sets_level():
    runner.configure_logging("debug")
    logger = logging.getLogger("member_report")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
