import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import ValidationError
from app.services.otp_service import OtpService

T0 = datetime(2026, 10, 17, 8, 0, tzinfo=timezone.utc)


def test_code_is_single_use():
    otp = OtpService(clock=lambda: T0)
    code = otp.issue(111)

    assert otp.verify("111", code) is True
    with pytest.raises(ValidationError, match="No confirmation code requested"):
        otp.verify(111, code)


def test_non_ascii_digits_are_a_wrong_guess():
    otp = OtpService(clock=lambda: T0)
    otp.issue(111)

    with pytest.raises(ValidationError, match="Invalid confirmation code") as exc_info:
        otp.verify(111, "١٢٣٤٥٦")
    assert exc_info.value.details == {"attempts_left": otp.max_attempts - 1}


def test_expired_codes_are_purged_by_refresh_cycle(services):
    services.otp._clock = lambda: T0
    services.otp.issue(111)
    services.otp._clock = lambda: T0 + timedelta(minutes=services.otp.validity_minutes + 1)
    fresh = services.otp.issue(222)

    asyncio.run(services.refresher.run_cycle())

    with pytest.raises(ValidationError, match="No confirmation code requested"):
        services.otp.verify(111, "000000")
    assert services.otp.verify(222, fresh) is True
