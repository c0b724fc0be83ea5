"""
utils/shop_utils.py

Purpose: Shop-wide helpers

- Record id and display order id generation
- Discount arithmetic
- Currency formatting
"""

import math
import secrets
import string
import time
from typing import Optional, Union

_BASE36 = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    """
    Encodes a non-negative integer in lowercase base 36.
    """
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_id(now_ms: Optional[int] = None) -> str:
    """
    Generates a record id: `id_` + base36 millisecond timestamp + 9 random chars.

    Example: id_lrx3k2a9q8w7e6r5t
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"id_{to_base36(now_ms)}{suffix}"


def generate_order_id(now_ms: Optional[int] = None) -> str:
    """
    Generates a human readable order number: `ORD` + last 8 timestamp digits + 4 chars.

    Example: ORD41234567K3ZQ
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    alphabet = string.digits + string.ascii_uppercase
    suffix = "".join(secrets.choice(alphabet) for _ in range(4))
    return f"ORD{str(now_ms)[-8:]}{suffix}"


def round_half_up(value: float) -> int:
    """
    Rounds .5 away from zero for positive amounts (Python's round() is banker's rounding).
    """
    return int(math.floor(value + 0.5))


def calculate_discounted_price(price: Union[int, float], discount: Union[int, float]) -> int:
    """
    Price after a percentage discount.

    Args:
        price: List price in currency units
        discount: Discount percent (0 means no discount)

    Returns:
        round(price - price * discount / 100) when discount > 0, else round(price)
    """
    if not discount or discount <= 0:
        return round_half_up(price)
    return round_half_up(price - (price * discount) / 100)


def format_currency(amount: Union[int, float], currency: str = "MMK") -> str:
    """
    Formats an amount with thousands separators, e.g. "10,000 MMK".
    """
    if float(amount).is_integer():
        return f"{int(amount):,} {currency}"
    return f"{amount:,.2f} {currency}"
