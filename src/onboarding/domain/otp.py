"""
One-time code issuance for phone/email verification and password reset.

Codes are generated with the ``secrets`` module and returned as strings to
preserve leading zeros. Each channel has its own code and expiry; issuing a
new code replaces the previous one for that channel only.

Codes are stored in plaintext on the principal and compared in constant time.
"""

import secrets
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .principals import Channel, OneTimeCode, Principal, utcnow


def generate_code(length: int) -> str:
    """Generate a cryptographically secure numeric code."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


@dataclass
class OtpIssuer:
    otp_length: int = 4
    otp_ttl_seconds: int = 600
    reset_pin_length: int = 6
    reset_pin_ttl_seconds: int = 600
    clock: Callable[[], datetime] = field(default=utcnow)

    def _new_code(self, length: int, ttl_seconds: int) -> OneTimeCode:
        return OneTimeCode(
            code=generate_code(length),
            expires_at=self.clock() + timedelta(seconds=ttl_seconds),
        )

    def issue(self, principal: Principal, channel: Channel) -> OneTimeCode:
        """Rotate the verification code of one channel."""
        otp = self._new_code(self.otp_length, self.otp_ttl_seconds)
        principal.set_otp(channel, otp)
        return otp

    def issue_unverified(
        self, principal: Principal, channels: Iterable[Channel] = (Channel.PHONE, Channel.EMAIL)
    ) -> dict[Channel, OneTimeCode]:
        """Rotate codes for every listed channel that is not verified yet."""
        return {
            channel: self.issue(principal, channel)
            for channel in channels
            if not principal.is_verified(channel)
        }

    def issue_reset(self, principal: Principal) -> OneTimeCode:
        otp = self._new_code(self.reset_pin_length, self.reset_pin_ttl_seconds)
        principal.reset_otp = otp
        return otp

    def is_usable(self, otp: OneTimeCode | None, candidate: str) -> bool:
        """True when ``candidate`` matches an unexpired code."""
        if otp is None:
            return False
        return otp.matches(candidate) and not otp.is_expired(self.clock())
