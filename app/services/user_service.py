"""
app/services/user_service.py

Purpose: User data management

- Register or refresh users from Mini App identity
- Wallet balance arithmetic (add / subtract / set)
- Order and top-up counters
- Failed purchase tracking (per UTC day)
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from app.core.exceptions import InsufficientBalanceError, ResourceNotFoundError, ValidationError
from app.core.logging import LogContext, get_logger
from app.db.repository import Repository
from app.models.user import BalanceOperation, User
from utils.time_utils import is_same_utc_day, utcnow
from utils.validation_utils import normalize_telegram_id

logger = get_logger(__name__)

PROFILE_FIELDS = ("username", "first_name", "last_name", "photo_url", "is_premium")


class UserService:
    """Operations on the users collection, keyed by Telegram id."""

    def __init__(self, users: Repository[User], clock: Callable[[], datetime] = utcnow):
        self.users = users
        self._clock = clock

    async def list_users(self) -> List[User]:
        return await self.users.list()

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.users.get(user_id)

    async def get_user_by_telegram_id(self, telegram_id: Any, use_cache: bool = True) -> Optional[User]:
        telegram_id = normalize_telegram_id(telegram_id)
        return await self.users.find(lambda user: user.telegram_id == telegram_id, use_cache=use_cache)

    async def _update(self, telegram_id: Any, transform: Callable[[User], User]) -> User:
        """Applies `transform` to one user and stamps lastActive."""
        telegram_id = normalize_telegram_id(telegram_id)
        now = self._clock()

        def stamped(user: User) -> User:
            return transform(user).model_copy(update={"last_active": now})

        try:
            return await self.users.update_where(lambda user: user.telegram_id == telegram_id, stamped)
        except ResourceNotFoundError as e:
            e.details = {"telegram_id": telegram_id}
            raise

    async def register_user(self, profile: Dict[str, Any]) -> User:
        """
        Creates the user on first visit, otherwise refreshes profile fields.

        Args:
            profile: Mini App user (telegram_id plus optional profile fields)

        Returns:
            The stored user
        """
        try:
            telegram_id = normalize_telegram_id(profile.get("telegram_id"))
        except ValueError as e:
            raise ValidationError("telegram_id is required") from e

        fields = {
            key: profile[key] for key in PROFILE_FIELDS
            if profile.get(key) is not None
        }
        now = self._clock()

        def upsert(records: List[User]) -> User:
            for index, user in enumerate(records):
                if user.telegram_id == telegram_id:
                    records[index] = user.model_copy(update={**fields, "last_active": now})
                    return records[index]
            user = User(telegram_id=telegram_id, joined_at=now, last_active=now, **fields)
            records.append(user)
            logger.info("New user registered", extra={"telegram_id": telegram_id})
            return user

        return await self.users.mutate(upsert)

    async def update_user(self, telegram_id: Any, changes: Dict[str, Any]) -> User:
        """Shallow-merges snake_case fields into a user."""
        return await self._update(telegram_id, lambda user: user.model_copy(update=dict(changes)))

    async def update_user_balance(self, telegram_id: Any, amount: int, operation: str = "add") -> User:
        """
        Applies add / subtract / set to the wallet balance.

        The balance is not floored at zero; callers validate before debiting.

        Raises:
            ValidationError: Unknown operation
            ResourceNotFoundError: No such user
        """
        try:
            operation = BalanceOperation(operation)
        except ValueError as e:
            raise ValidationError(f"Unknown balance operation: {operation}") from e

        def apply(user: User) -> User:
            if operation is BalanceOperation.ADD:
                balance = user.balance + amount
            elif operation is BalanceOperation.SUBTRACT:
                balance = user.balance - amount
            else:
                balance = amount
            return user.model_copy(update={"balance": balance})

        with LogContext(telegram_id=normalize_telegram_id(telegram_id)):
            user = await self._update(telegram_id, apply)
            logger.info(f"Balance {operation.value} {amount} -> {user.balance}")
            return user

    async def debit_balance(self, telegram_id: Any, amount: int) -> User:
        """
        Subtracts `amount` only if the balance covers it (checked under the collection lock).

        Raises:
            InsufficientBalanceError: Balance below amount
        """
        def apply(user: User) -> User:
            if user.balance < amount:
                raise InsufficientBalanceError(
                    details={"balance": user.balance, "required": amount}
                )
            return user.model_copy(update={"balance": user.balance - amount})

        return await self._update(telegram_id, apply)

    async def adjust_total_orders(self, telegram_id: Any, delta: int = 1) -> User:
        return await self._update(
            telegram_id,
            lambda user: user.model_copy(update={"total_orders": max(0, user.total_orders + delta)})
        )

    async def apply_order_outcome(self, telegram_id: Any, amount: int, approved: bool, revert: bool = False) -> User:
        """
        Updates the user for a processed order in one write.

        Approval: approvedOrders +1, totalSpent +amount (balance untouched).
        Rejection: rejectedOrders +1, balance +amount (refund).
        `revert=True` undoes a previously applied outcome.
        """
        sign = -1 if revert else 1

        def apply(user: User) -> User:
            if approved:
                changes = {
                    "approved_orders": user.approved_orders + sign,
                    "total_spent": user.total_spent + sign * amount,
                }
            else:
                changes = {
                    "rejected_orders": user.rejected_orders + sign,
                    "balance": user.balance + sign * amount,
                }
            return user.model_copy(update=changes)

        return await self._update(telegram_id, apply)

    async def apply_topup_credit(self, telegram_id: Any, amount: int, revert: bool = False) -> User:
        """
        Credits an approved top-up: balance +amount, totalTopups +1.
        """
        sign = -1 if revert else 1
        return await self._update(
            telegram_id,
            lambda user: user.model_copy(update={
                "balance": user.balance + sign * amount,
                "total_topups": user.total_topups + sign,
            })
        )

    async def increment_failed_attempts(self, telegram_id: Any) -> int:
        """
        Records a failed purchase attempt.

        The counter restarts at 1 on a new UTC day relative to the last attempt.
        Reaching the configured maximum is the caller's cue to ban.

        Returns:
            The new attempt count
        """
        now = self._clock()

        def apply(user: User) -> User:
            if is_same_utc_day(user.last_failed_attempt, now):
                attempts = user.failed_purchase_attempts + 1
            else:
                attempts = 1
            return user.model_copy(update={
                "failed_purchase_attempts": attempts,
                "last_failed_attempt": now,
            })

        user = await self._update(telegram_id, apply)
        logger.warning(
            f"Failed purchase attempt {user.failed_purchase_attempts}",
            extra={"telegram_id": user.telegram_id}
        )
        return user.failed_purchase_attempts

    async def reset_failed_attempts(self, telegram_id: Any) -> User:
        return await self._update(
            telegram_id,
            lambda user: user.model_copy(update={
                "failed_purchase_attempts": 0,
                "last_failed_attempt": None,
            })
        )
