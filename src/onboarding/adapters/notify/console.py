"""
Console notification adapter - Implements NotificationDispatcher protocol.

Logs every outbound SMS and email instead of delivering it, for development
and demo deployments without an SMS gateway or mail relay.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleNotificationDispatcher:
    """
    Implements NotificationDispatcher protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Messages are logged at INFO level to be visible in container logs.
    """

    def send_sms(self, phone: str, text: str) -> bool:
        logger.info("[SMS] To: %s Text: %s", phone, text)
        return True

    def send_email(self, to: str, subject: str, body: str) -> bool:
        logger.info("[EMAIL] To: %s Subject: %s\n%s", to, subject, body)
        return True

    def send_registration_pin(self, phone: str, email: str, text: str) -> bool:
        """Deliver a PIN over both channels (logged once per channel)."""
        return self.send_sms(phone, text) and self.send_email(email, "Your PIN", text)
