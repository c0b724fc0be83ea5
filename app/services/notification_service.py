"""
app/services/notification_service.py

Purpose: Telegram Bot API notifications

- Admin alerts for new orders and top-ups
- User alerts for status changes, bans, unbans and confirmation codes
- Broadcast to many chats with a fixed pause between sends
- Fire-and-forget: failures are logged and reported as False, never raised
"""

import asyncio
from typing import Any, Dict, Iterable, Optional

import httpx

from app.core.logging import get_logger
from app.models.order import Order, Topup
from app.models.status import ProcessingStatus
from app.models.user import User
from utils.constants import (
    BAN_MESSAGE,
    NEW_ORDER_MESSAGE,
    NEW_TOPUP_MESSAGE,
    ORDER_APPROVED_TEXT,
    ORDER_REJECTED_TEXT,
    ORDER_STATUS_MESSAGE,
    OTP_MESSAGE,
    STATUS_EMOJI,
    TOPUP_APPROVED_TEXT,
    TOPUP_REJECTED_TEXT,
    TOPUP_STATUS_MESSAGE,
    UNBAN_MESSAGE,
)
from utils.shop_utils import format_currency
from utils.time_utils import format_timestamp
from utils.validation_utils import sanitize_input

logger = get_logger(__name__)


class TelegramNotifier:
    """Sends bot messages through the Telegram Bot API."""

    def __init__(
        self,
        bot_token: Optional[str],
        admin_chat_id: str = "",
        api_base: str = "https://api.telegram.org",
        timeout: float = 10.0,
        broadcast_delay: float = 0.05,
        currency: str = "MMK",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.bot_token = bot_token
        self.admin_chat_id = admin_chat_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.broadcast_delay = broadcast_delay
        self.currency = currency
        self._transport = transport
        self._sleep = asyncio.sleep

    def is_configured(self) -> bool:
        return bool(self.bot_token)

    async def _call(self, method: str, payload: Dict[str, Any]) -> bool:
        if not self.is_configured():
            logger.warning(f"Bot token not configured, skipping {method}")
            return False

        url = f"{self.api_base}/bot{self.bot_token}/{method}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload)
        except httpx.TimeoutException:
            logger.error(f"Bot API timeout on {method}")
            return False
        except httpx.RequestError as e:
            logger.error(f"Bot API network error on {method}: {e}")
            return False

        try:
            ok = response.is_success and response.json().get("ok", False)
        except ValueError:
            ok = False

        if not ok:
            logger.error(
                f"Bot API error on {method}: {response.status_code} - {response.text[:200]}",
                extra={"telegram_id": str(payload.get("chat_id"))}
            )
        return ok

    async def send_message(self, chat_id: Any, text: str) -> bool:
        return await self._call("sendMessage", {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
        })

    async def send_photo(self, chat_id: Any, photo: str, caption: str = "") -> bool:
        return await self._call("sendPhoto", {
            "chat_id": chat_id,
            "photo": photo,
            "caption": caption,
            "parse_mode": "HTML",
        })

    async def notify_admin(self, text: str, photo: Optional[str] = None) -> bool:
        if not self.admin_chat_id:
            logger.warning("Admin chat id not configured, notification dropped")
            return False
        if photo and photo.startswith("http"):
            return await self.send_photo(self.admin_chat_id, photo, caption=text)
        return await self.send_message(self.admin_chat_id, text)

    # ------------------------------------------------------------------
    # Admin alerts
    # ------------------------------------------------------------------

    async def notify_new_order(self, order: Order, user: Optional[User] = None) -> bool:
        input_values = "\n".join(
            f"• {sanitize_input(key)}: {sanitize_input(value)}"
            for key, value in order.input_values.items()
        ) or "N/A"
        text = NEW_ORDER_MESSAGE.format(
            product_name=sanitize_input(order.product_name),
            amount=format_currency(order.amount, order.currency),
            order_id=order.order_id,
            customer_name=sanitize_input(user.display_name if user else order.telegram_id),
            username=sanitize_input(user.username) if user and user.username else "N/A",
            telegram_id=order.telegram_id,
            input_values=input_values,
            created_at=format_timestamp(order.created_at),
        )
        return await self.notify_admin(text)

    async def notify_new_topup(self, topup: Topup, user: Optional[User] = None) -> bool:
        text = NEW_TOPUP_MESSAGE.format(
            amount=format_currency(topup.amount, self.currency),
            payment_method=sanitize_input(topup.payment_method),
            customer_name=sanitize_input(user.display_name if user else topup.telegram_id),
            username=sanitize_input(user.username) if user and user.username else "N/A",
            telegram_id=topup.telegram_id,
            created_at=format_timestamp(topup.created_at),
        )
        return await self.notify_admin(text, photo=topup.proof_image)

    # ------------------------------------------------------------------
    # User alerts
    # ------------------------------------------------------------------

    async def notify_order_status(self, order: Order) -> bool:
        approved = order.status == ProcessingStatus.APPROVED
        text = ORDER_STATUS_MESSAGE.format(
            emoji=STATUS_EMOJI.get(order.status.value, ""),
            status_text="Approved" if approved else "Rejected",
            product_name=sanitize_input(order.product_name),
            amount=format_currency(order.amount, order.currency),
            order_id=order.order_id,
            additional_text=ORDER_APPROVED_TEXT if approved else ORDER_REJECTED_TEXT,
        )
        return await self.send_message(order.telegram_id, text)

    async def notify_topup_status(self, topup: Topup) -> bool:
        approved = topup.status == ProcessingStatus.APPROVED
        amount = format_currency(topup.amount, self.currency)
        text = TOPUP_STATUS_MESSAGE.format(
            emoji=STATUS_EMOJI.get(topup.status.value, ""),
            status_text="Approved" if approved else "Rejected",
            amount=amount,
            payment_method=sanitize_input(topup.payment_method),
            additional_text=TOPUP_APPROVED_TEXT.format(amount=amount) if approved else TOPUP_REJECTED_TEXT,
        )
        return await self.send_message(topup.telegram_id, text)

    async def notify_ban(self, telegram_id: Any, reason: str) -> bool:
        return await self.send_message(telegram_id, BAN_MESSAGE.format(reason=sanitize_input(reason)))

    async def notify_unban(self, telegram_id: Any) -> bool:
        return await self.send_message(telegram_id, UNBAN_MESSAGE)

    async def send_otp(self, telegram_id: Any, otp: str, validity_minutes: int) -> bool:
        return await self.send_message(
            telegram_id,
            OTP_MESSAGE.format(otp=otp, validity_minutes=validity_minutes)
        )

    # ------------------------------------------------------------------
    # Broadcast
    # ------------------------------------------------------------------

    async def broadcast(self, chat_ids: Iterable[Any], text: str, photo: Optional[str] = None) -> Dict[str, int]:
        """
        Sends the same message to every chat, one at a time.

        Failures are counted, never retried.

        Returns:
            {"success": n, "failed": m}
        """
        results = {"success": 0, "failed": 0}
        for index, chat_id in enumerate(chat_ids):
            if index and self.broadcast_delay > 0:
                await self._sleep(self.broadcast_delay)

            if photo:
                sent = await self.send_photo(chat_id, photo, caption=text)
            else:
                sent = await self.send_message(chat_id, text)
            results["success" if sent else "failed"] += 1

        logger.info(f"Broadcast finished: {results['success']} sent, {results['failed']} failed")
        return results
