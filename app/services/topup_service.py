"""
app/services/topup_service.py

Purpose: Wallet top-up requests

- Users submit an amount, a payment method and a payment proof
- Approval credits the wallet and bumps totalTopups
- Rejection only closes the request (nothing was debited)
"""

from typing import Any, List, Optional

from app.core.exceptions import ResourceNotFoundError, UserBannedError, ValidationError
from app.core.logging import LogContext, get_logger
from app.db.repository import Repository
from app.models.order import Topup
from app.models.status import ProcessingStatus, ensure_transition
from app.services.ban_service import BanService
from app.services.order_service import newest_first, parse_status, restore_pending, transition_status
from app.services.saga import Saga
from app.services.user_service import UserService
from utils.validation_utils import normalize_telegram_id

logger = get_logger(__name__)


class TopupService:

    def __init__(self, topups: Repository[Topup], users: UserService, bans: BanService):
        self.topups = topups
        self.users = users
        self.bans = bans

    async def list_topups(self) -> List[Topup]:
        return newest_first(await self.topups.list())

    async def get_topup(self, topup_id: str, use_cache: bool = True) -> Optional[Topup]:
        return await self.topups.get(topup_id, use_cache=use_cache)

    async def get_topups_by_user(self, telegram_id: Any) -> List[Topup]:
        telegram_id = normalize_telegram_id(telegram_id)
        return newest_first(await self.topups.filter(lambda topup: topup.telegram_id == telegram_id))

    async def get_topups_by_status(self, status: Any) -> List[Topup]:
        status = parse_status(status)
        return newest_first(await self.topups.filter(lambda topup: topup.status == status))

    async def create_topup(self, telegram_id: Any, amount: int, payment_method: str, proof_image: str = "") -> Topup:
        """
        Files a pending top-up request.

        Raises:
            UserBannedError: Requester is banned
            ResourceNotFoundError: Unknown user
            ValidationError: Non-positive amount or missing payment method
        """
        telegram_id = normalize_telegram_id(telegram_id)
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        if not payment_method:
            raise ValidationError("Payment method is required")

        if await self.bans.is_user_banned(telegram_id, use_cache=False):
            raise UserBannedError()

        user = await self.users.get_user_by_telegram_id(telegram_id)
        if user is None:
            raise ResourceNotFoundError("User not found", details={"telegram_id": telegram_id})

        topup = await self.topups.create(Topup(
            user_id=user.id,
            telegram_id=telegram_id,
            amount=amount,
            payment_method=payment_method,
            proof_image=proof_image or "",
        ))
        logger.info(f"Top-up requested: {amount}", extra={"telegram_id": telegram_id, "topup_id": topup.id})
        return topup

    async def _load(self, topup_id: str) -> Topup:
        topup = await self.topups.get(topup_id, use_cache=False)
        if topup is None:
            raise ResourceNotFoundError("Topup not found", details={"id": topup_id})
        return topup

    async def approve_topup(self, topup_id: str, processed_by: Optional[str] = None) -> Topup:
        """
        Approves a pending top-up and credits the wallet.

        Raises:
            InvalidStateTransitionError: Top-up already processed
        """
        topup = await self._load(topup_id)
        ensure_transition("Topup", topup.id, topup.status, ProcessingStatus.APPROVED)

        with LogContext(topup_id=topup.id, telegram_id=topup.telegram_id):
            async with Saga("approve_topup") as saga:
                updated = await transition_status(self.topups, topup.id, ProcessingStatus.APPROVED, processed_by)
                saga.add_compensation("restore top-up status", lambda: restore_pending(self.topups, topup.id))
                await self.users.apply_topup_credit(topup.telegram_id, topup.amount)

            logger.info(f"Top-up approved: {topup.amount}")
            return updated

    async def reject_topup(self, topup_id: str, processed_by: Optional[str] = None) -> Topup:
        topup = await self._load(topup_id)
        ensure_transition("Topup", topup.id, topup.status, ProcessingStatus.REJECTED)
        updated = await transition_status(self.topups, topup.id, ProcessingStatus.REJECTED, processed_by)
        logger.info("Top-up rejected", extra={"topup_id": topup.id, "telegram_id": topup.telegram_id})
        return updated
