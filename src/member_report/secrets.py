"""Utilities for loading local (gitignored) credentials."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_SECRETS_FILENAME = "local_secrets.json"

logger = logging.getLogger(__name__)


def _default_secrets_path() -> Path:
    root = Path(__file__).resolve().parents[2]
    return root / DEFAULT_SECRETS_FILENAME


def load_local_secrets(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Load secrets from a JSON file; return {} when the file is absent.

    Expected shape::

        {
          "github_token": "ghp_...",
          "github_app": {"app_id": "...", "private_key": "...", "installation_id": "..."}
        }
    """

    candidate = path or os.getenv("LOCAL_SECRETS_FILE") or _default_secrets_path()
    secrets_path = Path(candidate).expanduser()
    if not secrets_path.exists():
        return {}
    try:
        with secrets_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except json.JSONDecodeError as exc:
        logger.warning("ignoring unreadable secrets file %s: %s", secrets_path, exc)
        return {}
    return data if isinstance(data, dict) else {}


__all__ = ["load_local_secrets", "DEFAULT_SECRETS_FILENAME"]
