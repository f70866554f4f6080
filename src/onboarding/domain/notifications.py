"""
Fire-and-forget delivery of account notifications.

State-changing writes commit first; notifications are then handed to the
DeliveryQueue, which runs them on its own worker threads. A dispatcher that
returns False or raises is logged and otherwise ignored: delivery is
at-least-once from the caller's point of view and never unwinds the state
change it follows.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from .ports import NotificationDispatcher
from .principals import Channel, OneTimeCode, Principal

logger = logging.getLogger(__name__)


class DeliveryQueue:
    """Best-effort outbound delivery decoupled from the request."""

    def __init__(self, dispatcher: NotificationDispatcher, max_workers: int = 4) -> None:
        self._dispatcher = dispatcher
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def sms(self, phone: str, text: str) -> Future:
        return self._submit("sms", self._dispatcher.send_sms, phone, text)

    def email(self, to: str, subject: str, body: str) -> Future:
        return self._submit("email", self._dispatcher.send_email, to, subject, body)

    def registration_pin(self, phone: str, email: str, text: str) -> Future:
        return self._submit("registration_pin", self._dispatcher.send_registration_pin, phone, email, text)

    def _submit(self, channel: str, send: Callable[..., bool], *args: str) -> Future:
        future = self._executor.submit(_deliver, channel, send, *args)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def drain(self, timeout: float | None = None) -> None:
        """Block until every submitted delivery has finished."""
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


def _deliver(channel: str, send: Callable[..., bool], *args: str) -> bool:
    try:
        delivered = send(*args)
    except Exception:
        logger.exception("Notification via %s raised", channel)
        return False
    if not delivered:
        logger.warning("Notification via %s was not delivered", channel)
    return bool(delivered)


@dataclass
class AccountNotifier:
    """Composes account notifications and queues them."""

    queue: DeliveryQueue
    organization_name: str = "SRCC"
    otp_ttl_minutes: int = 10
    reset_pin_ttl_minutes: int = 10

    def verification_codes(self, principal: Principal, codes: dict[Channel, OneTimeCode]) -> None:
        phone_code = codes.get(Channel.PHONE)
        if phone_code is not None and principal.contact_phone:
            self.queue.sms(
                principal.contact_phone,
                f"Your {self.organization_name} phone verification code is {phone_code.code}. "
                f"It expires in {self.otp_ttl_minutes} minutes.",
            )
        email_code = codes.get(Channel.EMAIL)
        if email_code is not None:
            self.queue.email(
                principal.contact_email,
                f"{self.organization_name} Email Verification",
                f"Your email verification code is {email_code.code}.\n\n"
                f"The code expires in {self.otp_ttl_minutes} minutes. If you did not register, please ignore this email.",
            )

    def registration_received(self, principal: Principal) -> None:
        name = principal.display_name
        self.queue.email(
            principal.contact_email,
            f"{self.organization_name} Registration Confirmation",
            f"Dear {name},\n\n"
            f"Thank you for registering with {self.organization_name}. Your application has been "
            "received and is currently under review.\n\n"
            "You will receive another notification once your application has been reviewed.\n\n"
            f"Best regards,\n{self.organization_name} Team",
        )
        if principal.contact_phone:
            self.queue.sms(
                principal.contact_phone,
                f"Dear {name}, thank you for registering with {self.organization_name}. "
                "Your application is under review. We will notify you once the review is complete.",
            )

    def approved(self, principal: Principal) -> None:
        name = principal.display_name
        self.queue.email(
            principal.contact_email,
            f"{self.organization_name} Application Approved",
            f"Dear {name},\n\n"
            f"Congratulations! Your application with {self.organization_name} has been approved.\n\n"
            "You can now log in to your account using your registered email and password.\n\n"
            f"Best regards,\n{self.organization_name} Team",
        )
        if principal.contact_phone:
            self.queue.sms(
                principal.contact_phone,
                f"Congratulations {name}! Your {self.organization_name} application has been approved. "
                "You can now log in to your account.",
            )

    def rejected(self, principal: Principal, reason: str | None) -> None:
        name = principal.display_name
        reason_text = f"Reason: {reason}\n\n" if reason else ""
        self.queue.email(
            principal.contact_email,
            f"{self.organization_name} Application Status",
            f"Dear {name},\n\n"
            f"Thank you for your interest in {self.organization_name}.\n\n"
            "After careful review of your application, we regret to inform you that we are unable "
            "to proceed with your application at this time.\n\n"
            f"{reason_text}"
            "You are welcome to apply again in the future.\n\n"
            f"Best regards,\n{self.organization_name} Team",
        )
        if principal.contact_phone:
            self.queue.sms(
                principal.contact_phone,
                f"Dear {name}, we have reviewed your {self.organization_name} application. "
                "Unfortunately, we are unable to proceed at this time. Check your email for details.",
            )

    def reset_pin(self, principal: Principal, otp: OneTimeCode) -> None:
        text = (
            f"Your {self.organization_name} password reset code is {otp.code}. "
            f"It expires in {self.reset_pin_ttl_minutes} minutes."
        )
        if principal.contact_phone:
            self.queue.registration_pin(principal.contact_phone, principal.contact_email, text)
        else:
            self.queue.email(principal.contact_email, f"{self.organization_name} Password Reset", text)
