"""
app/services/otp_service.py

Purpose: Purchase confirmation codes

- 6-digit code issued per Telegram id and delivered by the bot
- Codes expire after a few minutes and allow a limited number of guesses
- Held in process memory; a restart invalidates outstanding codes
"""

import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict

from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from utils.constants import OTP_MAX_ATTEMPTS
from utils.time_utils import is_expired, utcnow
from utils.validation_utils import normalize_telegram_id, validate_otp_format

logger = get_logger(__name__)


@dataclass
class IssuedCode:
    code: str
    issued_at: datetime
    attempts: int = 0


class OtpService:

    def __init__(
        self,
        validity_minutes: int = 5,
        max_attempts: int = OTP_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.validity_minutes = validity_minutes
        self.max_attempts = max_attempts
        self._clock = clock
        self._codes: Dict[str, IssuedCode] = {}

    def issue(self, telegram_id) -> str:
        """
        Generates a fresh code for the user, replacing any outstanding one.
        """
        telegram_id = normalize_telegram_id(telegram_id)
        code = f"{secrets.randbelow(1_000_000):06d}"
        self._codes[telegram_id] = IssuedCode(code=code, issued_at=self._clock())
        logger.info("Confirmation code issued", extra={"telegram_id": telegram_id})
        return code

    def verify(self, telegram_id, code: str) -> bool:
        """
        Checks and consumes a code.

        Raises:
            ValidationError: Missing, expired, exhausted or wrong code
        """
        telegram_id = normalize_telegram_id(telegram_id)
        issued = self._codes.get(telegram_id)

        if issued is None:
            raise ValidationError("No confirmation code requested")

        if is_expired(issued.issued_at, self.validity_minutes, now=self._clock()):
            del self._codes[telegram_id]
            raise ValidationError("Confirmation code expired")

        if issued.attempts >= self.max_attempts:
            del self._codes[telegram_id]
            raise ValidationError("Too many attempts, request a new code")

        if not validate_otp_format(code or "") or not secrets.compare_digest(issued.code.encode(), code.strip().encode()):
            issued.attempts += 1
            remaining = self.max_attempts - issued.attempts
            logger.warning(
                f"Wrong confirmation code ({remaining} attempt(s) left)",
                extra={"telegram_id": telegram_id}
            )
            raise ValidationError("Invalid confirmation code", details={"attempts_left": remaining})

        del self._codes[telegram_id]
        return True

    def discard(self, telegram_id):
        self._codes.pop(normalize_telegram_id(telegram_id), None)

    def purge_expired(self) -> int:
        """Drops expired codes. Returns how many were removed."""
        now = self._clock()
        expired = [
            telegram_id for telegram_id, issued in self._codes.items()
            if is_expired(issued.issued_at, self.validity_minutes, now=now)
        ]
        for telegram_id in expired:
            del self._codes[telegram_id]
        return len(expired)
