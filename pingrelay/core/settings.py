"""
Read-only user settings for pingrelay.

Settings live in ``~/.config/pingrelay/settings.json``. The file is never
written by pingrelay; command line flags always take precedence.

Recognised keys:
    ping_count: default echo cycles per probe (positive integer)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from pingrelay.logging import get_logger
logger = get_logger(__name__)

SETTINGS_DIR = Path.home() / ".config" / "pingrelay"
SETTINGS_PATH = SETTINGS_DIR / "settings.json"


def load_settings() -> dict:
    """
    Load the settings file.

    Returns an empty dict if the file is missing, unreadable, or does not
    hold a JSON object.
    """
    if not SETTINGS_PATH.exists():
        return {}

    try:
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable settings file {SETTINGS_PATH}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring settings file {SETTINGS_PATH}: expected a JSON object")
        return {}
    return data


def get_setting(key: str, default: Any = None) -> Any:
    """Read a raw setting value with a fallback default."""
    return load_settings().get(key, default)


def _as_count(value: Any) -> Optional[int]:
    # JSON has no int/float split, and hand-edited files often quote numbers
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        count = value
    elif isinstance(value, float) and value.is_integer():
        count = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        count = int(value.strip())
    else:
        return None
    return count if count > 0 else None


def get_ping_count(default: int) -> int:
    """
    Default echo cycles per probe from the ``ping_count`` setting.

    Accepts a positive integer, an integral float (``4.0``) or a numeric
    string (``"4"``). Anything else logs a warning and yields ``default``.
    """
    value = get_setting("ping_count")
    if value is None:
        return default

    count = _as_count(value)
    if count is None:
        logger.warning(
            f"Invalid ping_count {value!r} in {SETTINGS_PATH}; using {default}"
        )
        return default
    return count
