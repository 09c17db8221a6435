"""Entry points for running the member email report."""

from __future__ import annotations

import logging
import os
import sys
from typing import List, Optional

from .auth import build_client
from .collectors import fetch_members
from .config import ReportSettings, parse_args, resolve_settings
from .publisher import publish_reports

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Send package logs to stderr with a compact one-line format."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("member_report")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False


def run_report(settings: ReportSettings) -> List[str]:
    """Collect members of ``settings.org`` and commit the reports; return written paths."""
    logger.info("building member email report for %s -> %s/%s",
                settings.org, settings.owner, settings.repo)
    with build_client(settings) as client:
        records = fetch_members(client, settings.org)
        written = publish_reports(client, settings, records)
    logger.info("published %d file(s) for %d members", len(written), len(records))
    return written


def signal_failure(message: str) -> None:
    """Mark the workflow run failed with ``message`` as its annotation."""
    # workflow commands need newlines escaped to stay on one line
    escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    print(f"::error::{escaped}")


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point; exits with status 1 when the run fails."""
    args = parse_args(argv)
    configure_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))
    try:
        settings = resolve_settings(args)
        run_report(settings)
    except Exception as exc:
        logger.error("member email report failed: %s", exc)
        signal_failure(str(exc))
        sys.exit(1)


if __name__ == "__main__":
    main()
