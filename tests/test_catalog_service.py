import asyncio

import pytest

from app.core.exceptions import ResourceNotFoundError, ValidationError
from utils.shop_utils import calculate_discounted_price


def run(coro):
    return asyncio.run(coro)


def create_category(services, name="Mobile Legends"):
    return run(services.catalog.create_category({"name": name, "flag": "🎮"}))


def test_discounted_price_rounds_half_up():
    assert calculate_discounted_price(5000, 20) == 4000
    assert calculate_discounted_price(1000, 0) == 1000
    assert calculate_discounted_price(999, 15) == 849  # 849.15
    assert calculate_discounted_price(5, 10) == 5       # 4.5 rounds up
    assert calculate_discounted_price(1500, 33.3) == 1001
    assert calculate_discounted_price(2500.5, 0) == 2501
    assert calculate_discounted_price(5000, 100) == 0


def test_create_product_computes_discounted_price(services, backend):
    category = create_category(services)

    product = run(services.catalog.create_product({
        "category_id": category.id,
        "name": "86 Diamonds",
        "price": 5000,
        "discount": 20,
    }))

    assert product.discounted_price == 4000
    assert product.currency == "MMK"
    stored = backend.records("bin-products", "products")[0]
    assert stored["discountedPrice"] == 4000
    assert stored["categoryId"] == category.id


def test_product_without_discount_keeps_price(services):
    category = create_category(services)
    product = run(services.catalog.create_product({
        "category_id": category.id, "name": "Weekly Pass", "price": 7000,
    }))
    assert product.discounted_price == 7000


def test_update_price_or_discount_recomputes(services):
    category = create_category(services)
    product = run(services.catalog.create_product({
        "category_id": category.id, "name": "172 Diamonds", "price": 10000, "discount": 10,
    }))
    assert product.discounted_price == 9000

    product = run(services.catalog.update_product(product.id, {"price": 12000}))
    assert product.discounted_price == 10800

    product = run(services.catalog.update_product(product.id, {"discount": 0}))
    assert product.discounted_price == 12000

    product = run(services.catalog.update_product(product.id, {"name": "172 Diamonds (promo)"}))
    assert product.discounted_price == 12000


def test_category_discount_flag_follows_products(services):
    category = create_category(services)
    product = run(services.catalog.create_product({
        "category_id": category.id, "name": "Starlight", "price": 9000, "discount": 5,
    }))
    assert run(services.catalog.get_category(category.id)).has_discount is True

    run(services.catalog.update_product(product.id, {"discount": 0}))
    assert run(services.catalog.get_category(category.id)).has_discount is False

    run(services.catalog.update_product(product.id, {"discount": 15}))
    run(services.catalog.delete_product(product.id))
    assert run(services.catalog.get_category(category.id)).has_discount is False


def test_delete_category_cascades_only_to_its_children(services, backend):
    doomed = create_category(services, "PUBG Mobile")
    kept = create_category(services, "Free Fire")

    for category in (doomed, kept):
        run(services.catalog.create_product({"category_id": category.id, "name": "Pack", "price": 1000}))
        run(services.catalog.create_input_table({"category_id": category.id, "name": "Player ID"}))

    removed = run(services.catalog.delete_category(doomed.id))

    assert removed == {"categories": 1, "products": 1, "input_tables": 1}
    products = backend.records("bin-products", "products")
    tables = backend.records("bin-input_tables", "inputTables")
    assert [product["categoryId"] for product in products] == [kept.id]
    assert [table["categoryId"] for table in tables] == [kept.id]
    assert [category["id"] for category in backend.records("bin-categories", "categories")] == [kept.id]


def test_delete_missing_category(services):
    with pytest.raises(ResourceNotFoundError):
        run(services.catalog.delete_category("id_missing"))


def test_sold_counters(services):
    category = create_category(services)
    product = run(services.catalog.create_product({
        "category_id": category.id, "name": "Twilight Pass", "price": 12000,
    }))

    assert run(services.catalog.increment_product_sold(product.id)).sold == 1
    assert run(services.catalog.increment_category_sold(category.id)).total_sold == 1
    assert run(services.catalog.increment_product_sold(product.id, -5)).sold == 0


def test_input_tables_by_category(services):
    category = create_category(services)
    run(services.catalog.create_input_table({"category_id": category.id, "name": "Player ID", "placeholder": "12345678"}))
    run(services.catalog.create_input_table({"category_id": category.id, "name": "Server ID"}))
    run(services.catalog.create_input_table({"category_id": "other", "name": "UID"}))

    names = [table.name for table in run(services.catalog.get_input_tables_by_category(category.id))]
    assert names == ["Player ID", "Server ID"]


def test_create_product_validates_data(services):
    with pytest.raises(ValidationError):
        run(services.catalog.create_product({"name": "No category", "price": 100}))
