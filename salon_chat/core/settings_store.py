"""
Persisted runtime settings. Holds the active completion model.
"""

from typing import Optional

from . import config
from .db import DB_ERRORS, get_db, init_db
from .errors import StoreError, ValidationError
from ..util.logging import logger

ACTIVE_MODEL_KEY = "active_model"


class SettingsStore:
    """Key/value settings table."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path
        init_db(db_path)

    def get(self, key: str) -> Optional[str]:
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
                row = cursor.fetchone()
                return row[0] if row else None
        except DB_ERRORS as e:
            raise StoreError(f"Failed to read setting {key}", operation="settings.get") from e

    def set(self, key: str, value: str) -> None:
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "INSERT INTO settings (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP",
                    (key, value)
                )
                conn.commit()
        except DB_ERRORS as e:
            raise StoreError(f"Failed to write setting {key}", operation="settings.set") from e

        logger.log_operation("settings.set", "success", {"key": key, "value": value})

    def get_active_model(self) -> str:
        """Active model, or DEFAULT_MODEL when none was ever set or the read fails."""
        try:
            model = self.get(ACTIVE_MODEL_KEY)
        except StoreError as e:
            logger.log_dependency_failure("settings", e, action="fallback")
            model = None
        return model or config.DEFAULT_MODEL

    def set_active_model(self, model: str) -> str:
        if not model or not model.strip():
            raise ValidationError("model cannot be empty", field="model")
        model = model.strip()
        self.set(ACTIVE_MODEL_KEY, model)
        return model
