"""
app/models/catalog.py

Purpose: Catalog records

- Categories (with denormalized hasDiscount and totalSold)
- Products (discountedPrice stored redundantly)
- Input field definitions collected at purchase time
"""

from datetime import datetime
from typing import Union

from pydantic import Field

from app.models.base import Record
from utils.constants import DEFAULT_DELIVERY_TIME
from utils.shop_utils import calculate_discounted_price, generate_id
from utils.time_utils import utcnow


class Category(Record):
    id: str = Field(default_factory=generate_id)
    name: str
    icon: str = ""
    flag: str = ""
    has_discount: bool = False
    total_sold: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Product(Record):
    id: str = Field(default_factory=generate_id)
    category_id: str
    name: str
    price: Union[int, float]
    currency: str = "MMK"
    discount: float = 0
    discounted_price: Union[int, float] = 0
    icon: str = ""
    delivery_time: str = DEFAULT_DELIVERY_TIME
    sold: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def repriced(self) -> "Product":
        """Copy with discounted_price recomputed from price and discount."""
        return self.model_copy(
            update={"discounted_price": calculate_discounted_price(self.price, self.discount)}
        )


class InputTableDefinition(Record):
    id: str = Field(default_factory=generate_id)
    category_id: str
    name: str
    placeholder: str = ""
    created_at: datetime = Field(default_factory=utcnow)
