"""
app/services/order_service.py

Purpose: Orders and the purchase flow

- Purchase: ban check, balance check, failed-attempt tracking, confirmation code,
  then debit + order creation as one compensated saga
- Approval / rejection with terminal-state guard
- Cross-collection effects undone in reverse order when a later step fails
"""

from typing import Any, Callable, Dict, List, Optional, TypeVar

from app.core.exceptions import (
    InsufficientBalanceError,
    ResourceNotFoundError,
    UserBannedError,
    ValidationError,
)
from app.core.logging import LogContext, get_logger
from app.db.repository import Repository
from app.models.order import Order
from app.models.status import ProcessingStatus, ensure_transition
from app.services.ban_service import BanService
from app.services.catalog_service import CatalogService
from app.services.notification_service import TelegramNotifier
from app.services.otp_service import OtpService
from app.services.saga import Saga
from app.services.user_service import UserService
from utils.constants import MAX_ATTEMPTS_BAN_REASON
from utils.shop_utils import calculate_discounted_price
from utils.time_utils import utcnow
from utils.validation_utils import normalize_telegram_id, validate_input

logger = get_logger(__name__)

T = TypeVar("T")


def newest_first(records: List[T]) -> List[T]:
    return sorted(records, key=lambda record: record.created_at.timestamp(), reverse=True)


def parse_status(status: Any) -> ProcessingStatus:
    try:
        return ProcessingStatus(status)
    except ValueError as e:
        raise ValidationError(f"Unknown status: {status}") from e


async def transition_status(
    repository: Repository,
    record_id: str,
    to_status: ProcessingStatus,
    processed_by: Optional[str],
) -> Any:
    """
    Moves a pending record to a terminal status inside one locked write.

    Raises:
        ResourceNotFoundError: No such record
        InvalidStateTransitionError: Record already processed
    """
    def apply(records: List[Any]):
        for index, record in enumerate(records):
            if record.id == record_id:
                ensure_transition(repository.entity, record_id, record.status, to_status)
                records[index] = record.model_copy(update={
                    "status": to_status,
                    "processed_at": utcnow(),
                    "processed_by": processed_by,
                })
                return records[index]
        raise ResourceNotFoundError(f"{repository.entity} not found", details={"id": record_id})

    return await repository.mutate(apply)


async def restore_pending(repository: Repository, record_id: str) -> Any:
    """Compensation for `transition_status`."""
    return await repository.update(
        record_id,
        {"status": ProcessingStatus.PENDING, "processed_at": None, "processed_by": None},
        stamp=False,
    )


class OrderService:

    def __init__(
        self,
        orders: Repository[Order],
        users: UserService,
        bans: BanService,
        catalog: CatalogService,
        notifier: TelegramNotifier,
        otp: OtpService,
        max_failed_attempts: int = 5,
        otp_required: bool = True,
    ):
        self.orders = orders
        self.users = users
        self.bans = bans
        self.catalog = catalog
        self.notifier = notifier
        self.otp = otp
        self.max_failed_attempts = max_failed_attempts
        self.otp_required = otp_required

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_orders(self) -> List[Order]:
        return newest_first(await self.orders.list())

    async def get_order(self, order_id: str, use_cache: bool = True) -> Optional[Order]:
        return await self.orders.get(order_id, use_cache=use_cache)

    async def get_orders_by_user(self, telegram_id: Any) -> List[Order]:
        telegram_id = normalize_telegram_id(telegram_id)
        return newest_first(await self.orders.filter(lambda order: order.telegram_id == telegram_id))

    async def get_orders_by_status(self, status: Any) -> List[Order]:
        status = parse_status(status)
        return newest_first(await self.orders.filter(lambda order: order.status == status))

    async def create_order(self, order: Order) -> Order:
        """
        Stores a pending order and bumps the user's totalOrders.
        """
        created = await self.orders.create(order)
        await self.users.adjust_total_orders(created.telegram_id, 1)
        return created

    # ------------------------------------------------------------------
    # Purchase
    # ------------------------------------------------------------------

    async def _record_failed_attempt(self, telegram_id: str, balance: int, price: int):
        attempts = await self.users.increment_failed_attempts(telegram_id)
        if attempts >= self.max_failed_attempts:
            await self.bans.ban_user(telegram_id, MAX_ATTEMPTS_BAN_REASON)
            await self.notifier.notify_ban(telegram_id, MAX_ATTEMPTS_BAN_REASON)
            raise UserBannedError(
                "Too many failed purchase attempts, account banned",
                details={"reason": MAX_ATTEMPTS_BAN_REASON},
            )
        raise InsufficientBalanceError(details={
            "balance": balance,
            "required": price,
            "attempts_left": self.max_failed_attempts - attempts,
        })

    async def place_order(
        self,
        telegram_id: Any,
        product_id: str,
        input_values: Optional[Dict[str, str]] = None,
        otp: Optional[str] = None,
    ) -> Order:
        """
        Buys a product from the user's wallet.

        Args:
            telegram_id: Buyer
            product_id: Product to buy
            input_values: Values for the category's input fields
            otp: Confirmation code (required when confirmation is enabled)

        Returns:
            The pending order

        Raises:
            UserBannedError: Buyer is banned, or was just banned for repeated failures
            InsufficientBalanceError: Balance below the sale price
            ValidationError: Missing input values or bad confirmation code
            ResourceNotFoundError: Unknown user or product
        """
        telegram_id = normalize_telegram_id(telegram_id)
        input_values = {key: str(value).strip() for key, value in (input_values or {}).items()}

        if await self.bans.is_user_banned(telegram_id, use_cache=False):
            raise UserBannedError()

        user = await self.users.get_user_by_telegram_id(telegram_id, use_cache=False)
        if user is None:
            raise ResourceNotFoundError("User not found", details={"telegram_id": telegram_id})

        product = await self.catalog.get_product(product_id)
        if product is None:
            raise ResourceNotFoundError("Product not found", details={"id": product_id})

        category = await self.catalog.get_category(product.category_id)
        fields = await self.catalog.get_input_tables_by_category(product.category_id)
        missing = [field.name for field in fields if not validate_input(input_values.get(field.name))]
        if missing:
            raise ValidationError("Please fill in all fields", details={"missing": missing})

        price = calculate_discounted_price(product.price, product.discount)
        if user.balance < price:
            await self._record_failed_attempt(telegram_id, user.balance, price)

        if self.otp_required:
            self.otp.verify(telegram_id, otp)

        order = Order(
            user_id=user.id,
            telegram_id=telegram_id,
            product_id=product.id,
            product_name=product.name,
            category_id=product.category_id,
            category_name=category.name if category else "",
            amount=price,
            currency=product.currency,
            input_values={field.name: input_values[field.name] for field in fields},
        )

        async with Saga("place_order") as saga:
            await self.users.debit_balance(telegram_id, price)
            saga.add_compensation(
                "refund debit",
                lambda: self.users.update_user_balance(telegram_id, price, "add")
            )

            created = await self.orders.create(order)
            saga.add_compensation("remove order", lambda: self.orders.delete(created.id))

            await self.users.adjust_total_orders(telegram_id, 1)

        logger.info(
            f"Order placed: {created.order_id} for {price}",
            extra={"order_id": created.id, "telegram_id": telegram_id}
        )
        return created

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def _load(self, order_id: str) -> Order:
        order = await self.orders.get(order_id, use_cache=False)
        if order is None:
            raise ResourceNotFoundError("Order not found", details={"id": order_id})
        return order

    async def _with_compensation(self, saga: Saga, description: str, step: Callable, undo: Callable):
        result = await step()
        saga.add_compensation(description, undo)
        return result

    async def approve_order(self, order_id: str, processed_by: Optional[str] = None) -> Order:
        """
        Approves a pending order.

        Effects: order status, user approvedOrders/totalSpent, product sold,
        category totalSold. The balance was already debited at purchase.

        Raises:
            InvalidStateTransitionError: Order already approved or rejected
        """
        order = await self._load(order_id)
        ensure_transition("Order", order.id, order.status, ProcessingStatus.APPROVED)

        with LogContext(order_id=order.id, telegram_id=order.telegram_id):
            async with Saga("approve_order") as saga:
                updated = await self._with_compensation(
                    saga, "restore order status",
                    lambda: transition_status(self.orders, order.id, ProcessingStatus.APPROVED, processed_by),
                    lambda: restore_pending(self.orders, order.id),
                )
                await self._with_compensation(
                    saga, "revert user stats",
                    lambda: self.users.apply_order_outcome(order.telegram_id, order.amount, approved=True),
                    lambda: self.users.apply_order_outcome(order.telegram_id, order.amount, approved=True, revert=True),
                )

                category_id = order.category_id
                try:
                    product = await self._with_compensation(
                        saga, "revert product sold",
                        lambda: self.catalog.increment_product_sold(order.product_id, 1),
                        lambda: self.catalog.increment_product_sold(order.product_id, -1),
                    )
                    category_id = category_id or product.category_id
                except ResourceNotFoundError:
                    logger.warning(f"Product {order.product_id} no longer exists, sold count skipped")

                if category_id:
                    try:
                        await self.catalog.increment_category_sold(category_id, 1)
                    except ResourceNotFoundError:
                        logger.warning(f"Category {category_id} no longer exists, sold count skipped")

            logger.info(f"Order approved: {updated.order_id}")
            return updated

    async def reject_order(self, order_id: str, processed_by: Optional[str] = None) -> Order:
        """
        Rejects a pending order and refunds exactly its amount.

        Raises:
            InvalidStateTransitionError: Order already approved or rejected
        """
        order = await self._load(order_id)
        ensure_transition("Order", order.id, order.status, ProcessingStatus.REJECTED)

        with LogContext(order_id=order.id, telegram_id=order.telegram_id):
            async with Saga("reject_order") as saga:
                updated = await self._with_compensation(
                    saga, "restore order status",
                    lambda: transition_status(self.orders, order.id, ProcessingStatus.REJECTED, processed_by),
                    lambda: restore_pending(self.orders, order.id),
                )
                await self.users.apply_order_outcome(order.telegram_id, order.amount, approved=False)

            logger.info(f"Order rejected and refunded: {updated.order_id}")
            return updated
