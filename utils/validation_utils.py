"""
utils/validation_utils.py

Purpose: Input validation

- Generic text/number/email/phone checks for purchase form fields
- Confirmation code format
- Telegram id normalization
- Input sanitization for HTML notifications
"""

import html
import re
from typing import Any, Optional


def validate_input(value: Optional[str], input_type: str = "text") -> bool:
    """
    Validates a free-form value captured from a purchase form field.

    Args:
        value: Raw user input
        input_type: One of text, number, email, phone

    Returns:
        True if the value is acceptable for the type
    """
    if value is None or value.strip() == "":
        return False

    value = value.strip()

    if input_type == "number":
        try:
            return float(value) > 0
        except ValueError:
            return False
    if input_type == "email":
        return bool(re.match(r"^[^\s@]+@[^\s@]+\.[^\s@]+$", value))
    if input_type == "phone":
        digits = re.sub(r"\D", "", value)
        return bool(re.match(r"^[0-9]{9,15}$", digits))

    return len(value) > 0


def validate_otp_format(otp: str) -> bool:
    """
    Validates confirmation code format (must be 6 digits).

    Args:
        otp: Code string

    Returns:
        True if valid 6-digit code
    """
    if not otp:
        return False

    return bool(re.match(r"^\d{6}$", otp.strip()))


def normalize_telegram_id(telegram_id: Any) -> str:
    """
    Telegram ids arrive as ints from the Mini App and as strings from storage.
    """
    if telegram_id is None:
        raise ValueError("telegram id is required")
    value = str(telegram_id).strip()
    if not value:
        raise ValueError("telegram id is required")
    return value


def sanitize_input(text: Optional[str], max_length: int = 1000) -> str:
    """
    Trims and escapes user text before it goes into an HTML-mode bot message.

    Args:
        text: Input text
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    text = " ".join(text.split())

    if len(text) > max_length:
        text = text[:max_length]

    return html.escape(text, quote=False)
