"""
app/services/catalog_service.py

Purpose: Catalog management

- Categories, products and per-category input field definitions
- Discounted price recomputed whenever price or discount changes
- Category hasDiscount kept in sync with its products
- Category delete cascades to products and input fields
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.core.logging import get_logger
from app.db.repository import Repository, Unchanged
from app.models.base import Record
from app.models.catalog import Category, InputTableDefinition, Product
from utils.time_utils import utcnow

logger = get_logger(__name__)

R = TypeVar("R", bound=Record)


def build_record(model: Type[R], data: Dict[str, Any]) -> R:
    """
    Validates new record data, reporting problems as a 422.
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid {model.__name__} data",
            details=[{"loc": list(error["loc"]), "msg": error["msg"]} for error in e.errors()],
        ) from e


class CatalogService:
    """Categories, products and input tables."""

    def __init__(
        self,
        categories: Repository[Category],
        products: Repository[Product],
        input_tables: Repository[InputTableDefinition],
        default_currency: str = "MMK",
    ):
        self.categories = categories
        self.products = products
        self.input_tables = input_tables
        self.default_currency = default_currency

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def list_categories(self) -> List[Category]:
        return await self.categories.list()

    async def get_category(self, category_id: str) -> Optional[Category]:
        return await self.categories.get(category_id)

    async def create_category(self, data: Dict[str, Any]) -> Category:
        return await self.categories.create(build_record(Category, data))

    async def update_category(self, category_id: str, changes: Dict[str, Any]) -> Category:
        return await self.categories.update(category_id, changes)

    async def delete_category(self, category_id: str) -> Dict[str, int]:
        """
        Deletes a category with its products and input fields.

        The three collections are rewritten one after another.

        Returns:
            Number of records removed per collection
        """
        removed = await self.categories.delete_where(lambda category: category.id == category_id)
        if not removed:
            raise ResourceNotFoundError("Category not found", details={"id": category_id})

        products = await self.delete_products_by_category(category_id)
        input_tables = await self.delete_input_tables_by_category(category_id)

        logger.info(
            f"Category {category_id} deleted with {products} product(s) and {input_tables} input field(s)"
        )
        return {"categories": removed, "products": products, "input_tables": input_tables}

    async def increment_category_sold(self, category_id: str, delta: int = 1) -> Category:
        return await self.categories.update_where(
            lambda category: category.id == category_id,
            lambda category: category.model_copy(update={"total_sold": max(0, category.total_sold + delta)}),
        )

    async def refresh_discount_flag(self, category_id: Optional[str]) -> Optional[Category]:
        """
        Recomputes a category's hasDiscount from its products.

        Missing categories are ignored (products may reference deleted ones).
        """
        if not category_id:
            return None
        products = await self.products.filter(
            lambda product: product.category_id == category_id, use_cache=False
        )
        has_discount = any(product.discount > 0 for product in products)

        def apply(categories: List[Category]):
            for index, category in enumerate(categories):
                if category.id == category_id:
                    if category.has_discount == has_discount:
                        return Unchanged(category)
                    categories[index] = category.model_copy(
                        update={"has_discount": has_discount, "updated_at": utcnow()}
                    )
                    return categories[index]
            return Unchanged(None)

        return await self.categories.mutate(apply)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    async def list_products(self) -> List[Product]:
        return await self.products.list()

    async def get_products_by_category(self, category_id: str) -> List[Product]:
        return await self.products.filter(lambda product: product.category_id == category_id)

    async def get_product(self, product_id: str) -> Optional[Product]:
        return await self.products.get(product_id)

    async def create_product(self, data: Dict[str, Any]) -> Product:
        data = dict(data)
        if not data.get("currency"):
            data["currency"] = self.default_currency
        product = build_record(Product, data).repriced()
        created = await self.products.create(product)
        await self.refresh_discount_flag(created.category_id)
        return created

    async def update_product(self, product_id: str, changes: Dict[str, Any]) -> Product:
        """
        Updates a product, recomputing discountedPrice when price or discount changes.
        """
        repricing = "price" in changes or "discount" in changes
        previous_category: Dict[str, Optional[str]] = {}

        def transform(product: Product) -> Product:
            previous_category["id"] = product.category_id
            updated = product.model_copy(update={**changes, "updated_at": utcnow()})
            return updated.repriced() if repricing else updated

        try:
            product = await self.products.update_where(lambda product: product.id == product_id, transform)
        except ResourceNotFoundError as e:
            e.details = {"id": product_id}
            raise

        await self.refresh_discount_flag(product.category_id)
        if previous_category.get("id") != product.category_id:
            await self.refresh_discount_flag(previous_category.get("id"))
        return product

    async def delete_product(self, product_id: str) -> bool:
        product = await self.products.get(product_id, use_cache=False)
        deleted = await self.products.delete(product_id)
        if deleted and product:
            await self.refresh_discount_flag(product.category_id)
        return deleted

    async def delete_products_by_category(self, category_id: str) -> int:
        return await self.products.delete_where(lambda product: product.category_id == category_id)

    async def increment_product_sold(self, product_id: str, delta: int = 1) -> Product:
        return await self.products.update_where(
            lambda product: product.id == product_id,
            lambda product: product.model_copy(update={"sold": max(0, product.sold + delta)}),
        )

    # ------------------------------------------------------------------
    # Input tables
    # ------------------------------------------------------------------

    async def list_input_tables(self) -> List[InputTableDefinition]:
        return await self.input_tables.list()

    async def get_input_tables_by_category(self, category_id: str) -> List[InputTableDefinition]:
        return await self.input_tables.filter(lambda table: table.category_id == category_id)

    async def create_input_table(self, data: Dict[str, Any]) -> InputTableDefinition:
        return await self.input_tables.create(build_record(InputTableDefinition, data))

    async def update_input_table(self, table_id: str, changes: Dict[str, Any]) -> InputTableDefinition:
        return await self.input_tables.update(table_id, changes)

    async def delete_input_table(self, table_id: str) -> bool:
        return await self.input_tables.delete(table_id)

    async def delete_input_tables_by_category(self, category_id: str) -> int:
        return await self.input_tables.delete_where(lambda table: table.category_id == category_id)
