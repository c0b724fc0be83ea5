"""
app/services/settings_service.py

Purpose: Shop settings singleton

- Website name, logo, announcement, emoji triggers and theme
- Defaults served when the store is unreachable
"""

from typing import Any, Dict

from app.core.exceptions import DocumentValidationError
from app.core.logging import get_logger
from app.db.repository import SingletonDocument
from app.models.content import ShopSettings

logger = get_logger(__name__)

EDITABLE_FIELDS = ("website_name", "website_logo", "announcement", "emoji_triggers", "theme")


class SettingsService:
    """Reads and edits the shop settings document."""

    def __init__(self, document: SingletonDocument[ShopSettings]):
        self.document = document

    async def get_settings(self) -> ShopSettings:
        try:
            return await self.document.get()
        except DocumentValidationError as e:
            logger.error(f"Settings document is malformed, using defaults: {e.message}")
            return ShopSettings()

    async def update_settings(self, changes: Dict[str, Any]) -> ShopSettings:
        """
        Shallow-merges editable fields into the settings.

        Args:
            changes: snake_case field values; unknown keys are ignored
        """
        accepted = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}
        updated = await self.document.update(accepted)
        logger.info(f"Settings updated: {', '.join(sorted(accepted)) or 'nothing'}")
        return updated

    async def set_announcement(self, text: str) -> ShopSettings:
        return await self.update_settings({"announcement": text})
