"""
app/schemas/admin.py

Purpose: Admin API request bodies

- Create bodies validate required fields
- Update bodies are partial; only fields sent are applied
"""

from typing import List, Literal, Optional, Union

from pydantic import Field

from app.schemas.shop import CamelModel


class BalanceUpdateRequest(CamelModel):
    amount: int
    operation: Literal["add", "subtract", "set"] = "add"


class BanRequest(CamelModel):
    reason: Optional[str] = None


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1)
    icon: str = ""
    flag: str = ""


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    icon: Optional[str] = None
    flag: Optional[str] = None


class ProductCreate(CamelModel):
    category_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    price: Union[int, float] = Field(..., ge=0)
    currency: Optional[str] = None
    discount: float = Field(default=0, ge=0, le=100)
    icon: str = ""
    delivery_time: Optional[str] = None


class ProductUpdate(CamelModel):
    category_id: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1)
    price: Optional[Union[int, float]] = Field(default=None, ge=0)
    currency: Optional[str] = None
    discount: Optional[float] = Field(default=None, ge=0, le=100)
    icon: Optional[str] = None
    delivery_time: Optional[str] = None


class InputTableCreate(CamelModel):
    category_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    placeholder: str = ""


class InputTableUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    placeholder: Optional[str] = None


class PaymentMethodCreate(CamelModel):
    name: str = Field(..., min_length=1)
    address: str = ""
    account_name: str = ""
    note: str = ""
    icon: str = ""


class PaymentMethodUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = None
    account_name: Optional[str] = None
    note: Optional[str] = None
    icon: Optional[str] = None


class BannerCreate(CamelModel):
    image: str = Field(..., min_length=1)
    category_id: Optional[str] = None
    description: str = ""


class SettingsUpdate(CamelModel):
    website_name: Optional[str] = None
    website_logo: Optional[str] = None
    announcement: Optional[str] = None
    emoji_triggers: Optional[List[str]] = None
    theme: Optional[str] = None


class AnnouncementRequest(CamelModel):
    announcement: str


class BroadcastRequest(CamelModel):
    message: str = Field(..., min_length=1)
    photo: Optional[str] = None
