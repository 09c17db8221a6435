"""Convenience shim to run the member email report from a checkout."""

from __future__ import annotations

import sys

from member_report.runner import main


if __name__ == "__main__":
    main(sys.argv[1:])
