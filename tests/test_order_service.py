import asyncio

import pytest

from app.core.exceptions import (
    InsufficientBalanceError,
    InvalidStateTransitionError,
    StorageError,
    UserBannedError,
    ValidationError,
)
from app.models.status import ProcessingStatus
from utils.constants import MAX_ATTEMPTS_BAN_REASON


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def shop(services):
    """User 111 with 10000 MMK, a category and a 5000 MMK product at 20% off."""
    run(services.users.register_user({"telegram_id": 111, "first_name": "Aung"}))
    run(services.users.update_user_balance(111, 10000, "set"))
    category = run(services.catalog.create_category({"name": "Mobile Legends"}))
    run(services.catalog.create_input_table({"category_id": category.id, "name": "Player ID"}))
    product = run(services.catalog.create_product({
        "category_id": category.id, "name": "257 Diamonds", "price": 5000, "discount": 20,
    }))
    return {"category": category, "product": product}


def place(services, shop, **kwargs):
    return run(services.orders.place_order(
        111, shop["product"].id, input_values={"Player ID": "55667788"}, **kwargs
    ))


def user(services):
    return run(services.users.get_user_by_telegram_id(111, use_cache=False))


def test_purchase_debits_discounted_price(services, shop):
    order = place(services, shop)

    assert order.status == ProcessingStatus.PENDING
    assert order.amount == 4000
    assert order.category_name == "Mobile Legends"
    assert order.input_values == {"Player ID": "55667788"}
    assert order.order_id.startswith("ORD")
    buyer = user(services)
    assert buyer.balance == 6000
    assert buyer.total_orders == 1


def test_approval_updates_counters_but_not_balance(services, shop):
    order = place(services, shop)

    approved = run(services.orders.approve_order(order.id, processed_by="999"))

    assert approved.status == ProcessingStatus.APPROVED
    assert approved.processed_by == "999"
    assert approved.processed_at is not None
    buyer = user(services)
    assert buyer.balance == 6000
    assert buyer.approved_orders == 1
    assert buyer.total_spent == 4000
    assert run(services.catalog.get_product(shop["product"].id)).sold == 1
    assert run(services.catalog.get_category(shop["category"].id)).total_sold == 1


def test_rejection_refunds_exact_amount(services, shop):
    order = place(services, shop)

    rejected = run(services.orders.reject_order(order.id, processed_by="999"))

    assert rejected.status == ProcessingStatus.REJECTED
    buyer = user(services)
    assert buyer.balance == 10000
    assert buyer.rejected_orders == 1
    assert buyer.approved_orders == 0
    assert run(services.catalog.get_product(shop["product"].id)).sold == 0


def test_terminal_orders_cannot_be_processed_again(services, shop):
    order = place(services, shop)
    run(services.orders.approve_order(order.id))

    with pytest.raises(InvalidStateTransitionError):
        run(services.orders.approve_order(order.id))
    with pytest.raises(InvalidStateTransitionError):
        run(services.orders.reject_order(order.id))

    buyer = user(services)
    assert buyer.approved_orders == 1
    assert buyer.total_spent == 4000
    assert buyer.balance == 6000
    assert run(services.catalog.get_product(shop["product"].id)).sold == 1


def test_insufficient_balance_counts_failed_attempts(services, shop):
    run(services.users.update_user_balance(111, 1000, "set"))

    with pytest.raises(InsufficientBalanceError) as exc_info:
        place(services, shop)

    assert exc_info.value.status_code == 402
    assert exc_info.value.details["attempts_left"] == 4
    assert user(services).failed_purchase_attempts == 1
    assert run(services.orders.list_orders()) == []


def test_fifth_failed_attempt_bans_and_notifies(services, shop, backend):
    run(services.users.update_user_balance(111, 0, "set"))

    for _ in range(4):
        with pytest.raises(InsufficientBalanceError):
            place(services, shop)
    with pytest.raises(UserBannedError):
        place(services, shop)

    ban = run(services.bans.get_ban(111))
    assert ban.reason == MAX_ATTEMPTS_BAN_REASON
    assert len(backend.messages_to("111")) == 1
    assert "Account Banned" in backend.messages_to("111")[0]["text"]

    run(services.users.update_user_balance(111, 10000, "set"))
    with pytest.raises(UserBannedError):
        place(services, shop)


def test_missing_input_values_rejected(services, shop):
    with pytest.raises(ValidationError) as exc_info:
        run(services.orders.place_order(111, shop["product"].id, input_values={}))
    assert exc_info.value.details == {"missing": ["Player ID"]}
    assert user(services).balance == 10000


def test_confirmation_code_required_when_enabled(services, shop):
    services.orders.otp_required = True

    with pytest.raises(ValidationError):
        place(services, shop, otp="000000")

    code = services.otp.issue(111)
    order = place(services, shop, otp=code)
    assert order.amount == 4000

    with pytest.raises(ValidationError):
        place(services, shop, otp=code)


def test_failed_order_write_refunds_debit(services, shop, backend):
    original = services.orders.orders.create

    async def failing_create(order):
        raise StorageError("Document store returned HTTP 500", status=500)

    services.orders.orders.create = failing_create
    try:
        with pytest.raises(StorageError):
            place(services, shop)
    finally:
        services.orders.orders.create = original

    assert user(services).balance == 10000
    assert backend.records("bin-orders", "orders") == []


def test_failed_approval_step_is_compensated(services, shop):
    order = place(services, shop)
    original = services.catalog.increment_category_sold

    async def failing_increment(category_id, delta=1):
        raise StorageError("Document store returned HTTP 500", status=500)

    services.catalog.increment_category_sold = failing_increment
    try:
        with pytest.raises(StorageError):
            run(services.orders.approve_order(order.id))
    finally:
        services.catalog.increment_category_sold = original

    buyer = user(services)
    assert buyer.approved_orders == 0
    assert buyer.total_spent == 0
    assert run(services.catalog.get_product(shop["product"].id)).sold == 0
    assert run(services.orders.get_order(order.id, use_cache=False)).status == ProcessingStatus.PENDING

    run(services.orders.approve_order(order.id))
    assert user(services).approved_orders == 1


def test_orders_listed_newest_first(services, shop):
    first = place(services, shop)
    second = place(services, shop)

    by_user = run(services.orders.get_orders_by_user(111))
    assert [order.id for order in by_user] == [second.id, first.id]

    run(services.orders.approve_order(first.id))
    assert [order.id for order in run(services.orders.get_orders_by_status("pending"))] == [second.id]
    assert [order.id for order in run(services.orders.get_orders_by_status("approved"))] == [first.id]


def test_unknown_status_filter(services):
    with pytest.raises(ValidationError):
        run(services.orders.get_orders_by_status("shipped"))


def test_input_values_limited_to_category_fields(services, shop):
    order = run(services.orders.place_order(
        111, shop["product"].id, input_values={"Player ID": "55667788", "Server": "2001"}
    ))
    assert order.input_values == {"Player ID": "55667788"}

    category = run(services.catalog.create_category({"name": "Gift Cards"}))
    card = run(services.catalog.create_product({"category_id": category.id, "name": "iTunes 10$", "price": 3000}))

    order = run(services.orders.place_order(111, card.id, input_values={"note": "<script>"}))
    assert order.input_values == {}
