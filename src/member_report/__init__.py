"""Organization member email report, committed back to a GitHub repository."""

from .runner import main, run_report

__all__ = ["main", "run_report"]
