"""Configuration persistence: load and save."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from paper_swipe.models import (
    CONFIG_APP_NAME,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    MISSING_PUBLISHED_POLICIES,
    SessionState,
    UserConfig,
)
from paper_swipe.query import CATEGORY_TOPICS

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration Persistence
# ============================================================================
#
# Validation contract: _dict_to_config() guarantees valid output for any input:
#
#   Field                     Rule                           Handler
#   ────────────────────────  ─────────────────────────────  ─────────────────────
#   page_size                 1 ≤ x ≤ MAX_PAGE_SIZE          coerce_page_size
#   selected_categories[]     known category ids, no dupes   _parse_categories
#   missing_published_policy  in MISSING_PUBLISHED_POLICIES  _dict_to_config
#   request_timeout_seconds   x ≥ 1                          _dict_to_config
#   session.current_index     x ≥ 0                          SessionState
#   scalar fields             type-checked via _safe_get()   _dict_to_config
#
CONFIG_FILENAME = "config.json"


def get_config_path() -> Path:
    """Get the path to the configuration file.

    Uses platformdirs for cross-platform config directory:
    - Linux: ~/.config/paper-swipe/config.json
    - macOS: ~/Library/Application Support/paper-swipe/config.json
    - Windows: %APPDATA%/paper-swipe/config.json
    """
    config_dir = Path(user_config_dir(CONFIG_APP_NAME))
    return config_dir / CONFIG_FILENAME


def coerce_page_size(value: Any) -> int:
    """Validate and clamp a configured page size."""
    if not isinstance(value, int) or isinstance(value, bool):
        return DEFAULT_PAGE_SIZE
    return max(1, min(value, MAX_PAGE_SIZE))


def _config_to_dict(config: UserConfig) -> dict[str, Any]:
    """Serialize UserConfig to a JSON-compatible dictionary."""
    return {
        "version": config.version,
        "user_id": config.user_id,
        "page_size": coerce_page_size(config.page_size),
        "selected_categories": list(config.selected_categories),
        "theme_name": config.theme_name,
        "haptics_enabled": config.haptics_enabled,
        "rollback_on_store_failure": config.rollback_on_store_failure,
        "missing_published_policy": config.missing_published_policy,
        "request_timeout_seconds": config.request_timeout_seconds,
        "store_db_path": config.store_db_path,
        "session": {
            "last_search": config.session.last_search,
            "current_index": config.session.current_index,
        },
    }


def _safe_get(data: dict, key: str, default: Any, expected_type: type) -> Any:
    """Safely get a value from dict with type validation.

    Returns the default if key is missing or value has wrong type.
    """
    value = data.get(key, default)
    if not isinstance(value, expected_type):
        return default
    return value


def _parse_categories(raw: Any) -> list[str]:
    """Keep known category ids in their stored order, dropping duplicates."""
    if not isinstance(raw, list):
        return []
    known = [c for c in raw if isinstance(c, str) and c in CATEGORY_TOPICS]
    return list(dict.fromkeys(known))


def _parse_session_state(data: dict[str, Any]) -> SessionState:
    """Parse the session state section from config data."""
    session_data = data.get("session", {})
    if not isinstance(session_data, dict):
        session_data = {}
    return SessionState(
        last_search=_safe_get(session_data, "last_search", "", str),
        current_index=_safe_get(session_data, "current_index", 0, int),
    )


def _dict_to_config(data: dict[str, Any]) -> UserConfig:
    """Build a UserConfig from parsed JSON, falling back to defaults per field."""
    if not isinstance(data, dict):
        raise TypeError(f"Expected a JSON object, got {type(data).__name__}")

    policy = _safe_get(data, "missing_published_policy", "now", str)
    if policy not in MISSING_PUBLISHED_POLICIES:
        logger.warning("Unknown missing_published_policy %r, using 'now'", policy)
        policy = "now"

    timeout = _safe_get(data, "request_timeout_seconds", 30, int)
    if timeout < 1:
        timeout = 30

    return UserConfig(
        user_id=_safe_get(data, "user_id", "", str).strip(),
        page_size=coerce_page_size(data.get("page_size", DEFAULT_PAGE_SIZE)),
        selected_categories=_parse_categories(data.get("selected_categories")),
        theme_name=_safe_get(data, "theme_name", "paper-light", str),
        haptics_enabled=_safe_get(data, "haptics_enabled", True, bool),
        rollback_on_store_failure=_safe_get(data, "rollback_on_store_failure", False, bool),
        missing_published_policy=policy,
        request_timeout_seconds=timeout,
        store_db_path=_safe_get(data, "store_db_path", "", str),
        session=_parse_session_state(data),
        version=_safe_get(data, "version", 1, int),
    )


def load_config() -> UserConfig:
    """Load configuration from disk.

    Returns default config if file doesn't exist or is corrupted.
    """
    config_path = get_config_path()

    if not config_path.exists():
        return UserConfig()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        return _dict_to_config(data)
    except json.JSONDecodeError as e:
        logger.warning("Config file has invalid JSON, using defaults: %s", e)
        return UserConfig()
    except (KeyError, TypeError) as e:
        logger.warning("Config file has invalid structure, using defaults: %s", e)
        return UserConfig()
    except OSError as e:
        logger.warning("Could not read config file, using defaults: %s", e)
        return UserConfig()


def save_config(config: UserConfig) -> bool:
    """Save configuration to disk atomically.

    Creates the config directory if it doesn't exist.
    Returns True on success, False on failure.
    """
    config_path = get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        # Write to temp file in same directory, then atomically replace
        data = _config_to_dict(config)
        json_str = json.dumps(data, indent=2, ensure_ascii=False)
        fd, tmp_path = tempfile.mkstemp(dir=config_path.parent, suffix=".tmp", prefix=".config-")
        closed = False
        try:
            os.write(fd, json_str.encode("utf-8"))
            os.close(fd)
            closed = True
            os.replace(tmp_path, config_path)
        except BaseException:
            if not closed:
                os.close(fd)
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        return True
    except OSError as e:
        logger.error("Failed to save config: %s", e)
        return False


__all__ = [
    "CONFIG_FILENAME",
    "coerce_page_size",
    "get_config_path",
    "load_config",
    "save_config",
]
