"""
app/services/ban_service.py

Purpose: Ban list management

- Presence in the banned collection is the only ban predicate
- Ban is idempotent; unban also clears failed purchase tracking
"""

from typing import Any, List, Optional

from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger
from app.db.repository import Repository, Unchanged
from app.models.user import BannedUser
from app.services.user_service import UserService
from utils.constants import DEFAULT_BAN_REASON
from utils.validation_utils import normalize_telegram_id

logger = get_logger(__name__)


class BanService:

    def __init__(self, banned: Repository[BannedUser], users: UserService, banned_by: str = ""):
        self.banned = banned
        self.users = users
        self.banned_by = banned_by

    async def list_banned_users(self) -> List[BannedUser]:
        return await self.banned.list()

    async def get_ban(self, telegram_id: Any, use_cache: bool = True) -> Optional[BannedUser]:
        telegram_id = normalize_telegram_id(telegram_id)
        return await self.banned.find(lambda entry: entry.telegram_id == telegram_id, use_cache=use_cache)

    async def is_user_banned(self, telegram_id: Any, use_cache: bool = True) -> bool:
        return await self.get_ban(telegram_id, use_cache=use_cache) is not None

    async def ban_user(self, telegram_id: Any, reason: Optional[str] = None) -> BannedUser:
        """
        Adds the user to the ban list (no-op if already banned).

        Returns:
            The ban entry, existing or new
        """
        telegram_id = normalize_telegram_id(telegram_id)
        user = await self.users.get_user_by_telegram_id(telegram_id)

        def add(entries: List[BannedUser]):
            for entry in entries:
                if entry.telegram_id == telegram_id:
                    return Unchanged(entry)
            entry = BannedUser(
                telegram_id=telegram_id,
                username=user.username if user else "",
                first_name=user.first_name if user else "",
                reason=reason or DEFAULT_BAN_REASON,
                banned_by=self.banned_by,
            )
            entries.append(entry)
            return entry

        entry = await self.banned.mutate(add)
        logger.info(f"User banned: {entry.reason}", extra={"telegram_id": telegram_id})
        return entry

    async def unban_user(self, telegram_id: Any) -> bool:
        """
        Removes the ban entry and resets failed purchase attempts.

        Returns:
            True if an entry was removed
        """
        telegram_id = normalize_telegram_id(telegram_id)
        removed = await self.banned.delete_where(lambda entry: entry.telegram_id == telegram_id)
        try:
            await self.users.reset_failed_attempts(telegram_id)
        except ResourceNotFoundError:
            logger.warning("Unbanned id has no user record", extra={"telegram_id": telegram_id})
        if removed:
            logger.info("User unbanned", extra={"telegram_id": telegram_id})
        return removed > 0
