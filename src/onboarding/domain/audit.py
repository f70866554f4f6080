"""
Audit trail for account lifecycle events.

Writes are best-effort: a failing sink is logged and never propagates, so
an audit outage cannot roll back the state change being recorded.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .ports import AuditEntry, AuditLog

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(str, Enum):
    QUICK_REGISTRATION = "Quick Registration"
    REGISTRATION = "Registration"
    REGISTRATION_FAILED = "Registration Failed"
    OTP_VERIFIED = "OTP Verified"
    OTP_VERIFICATION_FAILED = "OTP Verification Failed"
    OTP_RESENT = "OTP Resent"
    APPLICATION_APPROVED = "Application Approved"
    APPLICATION_REJECTED = "Application Rejected"
    ACCOUNT_SUSPENDED = "Account Suspended"
    ACCOUNT_ACTIVATED = "Account Activated"
    ACCESS_UPDATED = "Access Updated"
    PROFILE_UPDATED = "User Update"
    LOGIN_SUCCESS = "Login Success"
    LOGIN_FAILED = "Login Failed"
    PASSWORD_RESET_REQUESTED = "Password Reset Requested"
    PASSWORD_RESET = "Password Reset"
    PASSWORD_RESET_FAILED = "Password Reset Failed"


@dataclass(frozen=True)
class RequestContext:
    """Originating request metadata attached to audit entries."""

    ip_address: str | None = None
    user_agent: str | None = None
    method: str | None = None
    path: str | None = None
    actor_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {key: value for key, value in self.__dict__.items() if value is not None}


@dataclass
class AuditTrail:
    sink: AuditLog
    buffer_limit: int = 1000
    _failed: list[AuditEntry] = field(default_factory=list, init=False, repr=False)

    def record(
        self,
        event: AuditEvent | str,
        detail: str,
        severity: Severity = Severity.INFO,
        subject_id: str | None = None,
        context: RequestContext | None = None,
    ) -> None:
        entry = AuditEntry(
            event=event.value if isinstance(event, AuditEvent) else event,
            detail=detail,
            severity=severity.value,
            subject_id=subject_id,
            request_meta=context.as_dict() if context else {},
        )
        try:
            self.sink.write(entry)
        except Exception as e:
            logger.warning("Audit write failed for %r: %s", entry.event, e)
            if len(self._failed) >= self.buffer_limit:
                self._failed.pop(0)
            self._failed.append(entry)

    @property
    def failed_entries(self) -> list[AuditEntry]:
        """Entries whose write failed, oldest first."""
        return list(self._failed)
