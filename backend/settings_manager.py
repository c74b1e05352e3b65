"""
Weekly Rhythm - Settings Editing
Reads and writes the user-editable subset of the .env file.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import dotenv
from pydantic import ValidationError

from ai_client import reset_ai_client
from config import AIConfig, ReminderConfig, ThemeConfig, reload_config
from logger import logger

ENV_PATH = Path(__file__).parent / ".env"
MASK = "********"

# (category, settings class, field, label, input type, extra schema)
EDITABLE = [
    ("AI Reminder Parser", AIConfig, "api_base_url", "API Base URL", "text", {}),
    ("AI Reminder Parser", AIConfig, "api_key", "API Key", "password", {}),
    ("AI Reminder Parser", AIConfig, "model_name", "Model Name", "select",
     {"options": ["gpt-4o-mini", "gpt-4o", "llama3"]}),
    ("Reminders", ReminderConfig, "later_default_hours", "'Later' pushes by (hours)", "number",
     {"min": 1, "max": 12}),
    ("Reminders", ReminderConfig, "pause_resume_hour", "Paused reminders return at", "number",
     {"min": 0, "max": 23}),
    ("Themes", ThemeConfig, "evening_start_hour", "Evening theme from", "number",
     {"min": 0, "max": 23}),
    ("Themes", ThemeConfig, "pre_event_window_minutes", "Focus prep window (minutes)", "number",
     {"min": 0, "max": 180}),
]


def _env_key(settings_cls, field: str) -> str:
    return f"{settings_cls.model_config['env_prefix']}{field}".upper()


SECRET_KEYS = {_env_key(cls, field) for _, cls, field, _, kind, _ in EDITABLE if kind == "password"}


def _editable_field(key: str) -> Optional[Tuple[type, str]]:
    return next(
        ((settings_cls, field) for _, settings_cls, field, _, _, _ in EDITABLE if _env_key(settings_cls, field) == key),
        None
    )


class SettingsManager:
    """Editable settings backed by the .env file next to the backend."""

    env_path: Path = ENV_PATH

    @classmethod
    def get_all_settings(cls) -> Dict[str, str]:
        if not cls.env_path.exists():
            logger.warning(f".env file not found at {cls.env_path}")
            return {}
        return dotenv.dotenv_values(cls.env_path)

    @classmethod
    def update_setting(cls, key: str, value: str) -> bool:
        """Write one editable key to .env and make it effective immediately."""
        target = _editable_field(key)
        if target is None:
            logger.warning(f"Refusing to update unmanaged setting {key}")
            return False

        settings_cls, field = target
        try:
            settings_cls(**{field: value})
        except ValidationError as e:
            logger.warning(f"Rejected value for {key}: {e.errors()[0]['msg']}")
            return False

        try:
            if not cls.env_path.exists():
                cls.env_path.write_text("", encoding="utf-8")
            dotenv.set_key(cls.env_path, key, value)
        except OSError as e:
            logger.error(f"Failed to update setting {key}: {e}")
            return False

        os.environ[key] = value
        reload_config()
        if key.startswith("AI_"):
            reset_ai_client()

        logger.info(f"Updated setting {key} = {MASK if key in SECRET_KEYS else value}")
        return True

    @classmethod
    def get_manageable_settings(cls) -> List[Dict[str, Any]]:
        """Settings schema grouped by category, with current values (secrets masked)."""
        current = cls.get_all_settings()
        categories: Dict[str, List[Dict[str, Any]]] = {}

        for category, settings_cls, field, label, input_type, extra in EDITABLE:
            key = _env_key(settings_cls, field)
            if key in SECRET_KEYS:
                value = MASK if current.get(key) else ""
            else:
                value = current.get(key, str(settings_cls.model_fields[field].default))
            categories.setdefault(category, []).append({
                "key": key,
                "label": label,
                "type": input_type,
                "value": value,
                **extra,
            })

        return [{"category": name, "settings": settings} for name, settings in categories.items()]
