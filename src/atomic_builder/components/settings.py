"""
Component builder settings helper.

Loads / saves the admin-controlled component types list and the small
key/value state used by the story endpoint (asset query string).
Both live in the sqlite file configured by APP_CONFIG.DB_PATH.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from atomic_builder.core.config import APP_CONFIG

logger = logging.getLogger("quart.app")

COMPONENT_TYPES_KEY = "component_types"


def _get_conn():
    db_path = Path(APP_CONFIG.DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(str(db_path))


def init_database() -> None:
    """Create the settings and state tables if they do not exist yet."""
    conn = _get_conn()
    try:
        cursor = conn.cursor()
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS component_settings ("
            "setting_key TEXT PRIMARY KEY, "
            "setting_value TEXT, "
            "updated_at TEXT)"
        )
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS state ("
            "state_key TEXT PRIMARY KEY, "
            "state_value TEXT)"
        )
        conn.commit()
        logger.info(f"Settings database ready at {APP_CONFIG.DB_PATH}")
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Component types
# ---------------------------------------------------------------------------

def get_component_types_text() -> str:
    """Return the raw ``machine_name|Label`` blob (empty string when unset)."""
    try:
        conn = _get_conn()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT setting_value FROM component_settings WHERE setting_key = ?",
                (COMPONENT_TYPES_KEY,),
            )
            row = cursor.fetchone()
        finally:
            conn.close()
        return row[0] if row and row[0] else ""
    except sqlite3.Error as e:
        logger.error(f"Failed to load component types: {e}", exc_info=True)
        return ""


def save_component_types(text: str) -> None:
    """Upsert the component types blob."""
    now = datetime.now(timezone.utc).isoformat()
    try:
        conn = _get_conn()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO component_settings (setting_key, setting_value, updated_at) "
                "VALUES (?, ?, ?) "
                "ON CONFLICT(setting_key) DO UPDATE SET "
                "setting_value = excluded.setting_value, "
                "updated_at = excluded.updated_at",
                (COMPONENT_TYPES_KEY, text, now),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Component types updated")
    except sqlite3.Error as e:
        logger.error(f"Failed to save component types: {e}", exc_info=True)
        raise


def parse_component_types(text: str) -> Dict[str, str]:
    """
    Parse ``machine_name|Label`` lines into an ordered mapping.

    Lines without a label reuse the capitalised machine name; blank lines
    are skipped.
    """
    options: Dict[str, str] = {}
    for line in text.strip().splitlines():
        line = line.strip()
        if not line:
            continue
        machine_name, _, label = line.partition("|")
        machine_name = machine_name.strip()
        if not machine_name:
            continue
        options[machine_name] = label.strip() or machine_name.capitalize()
    return options


def get_component_types_options() -> Dict[str, str]:
    """Configured component types, or the atomic design defaults."""
    text = get_component_types_text()
    if text.strip():
        parsed = parse_component_types(text)
        if parsed:
            return parsed
    return dict(APP_CONFIG.DEFAULT_COMPONENT_TYPES)


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

def get_state(key: str, default: Optional[str] = None) -> Optional[str]:
    try:
        conn = _get_conn()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT state_value FROM state WHERE state_key = ?", (key,))
            row = cursor.fetchone()
        finally:
            conn.close()
        return row[0] if row else default
    except sqlite3.Error as e:
        logger.error(f"Failed to read state '{key}': {e}")
        return default


def set_state_multiple(values: Dict[str, str]) -> None:
    conn = _get_conn()
    try:
        cursor = conn.cursor()
        for key, value in values.items():
            cursor.execute(
                "INSERT INTO state (state_key, state_value) VALUES (?, ?) "
                "ON CONFLICT(state_key) DO UPDATE SET state_value = excluded.state_value",
                (key, value),
            )
        conn.commit()
    finally:
        conn.close()
