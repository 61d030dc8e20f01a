"""Password reset notification.

Delivering the reset link (email, SMS, ...) is left to the deployment. The
default notifier only records that a link was issued.
"""

from typing import Protocol

from gatehouse.core.logging import get_logger

logger = get_logger(__name__)


class PasswordResetNotifier(Protocol):
    """Delivers a password reset token to its owner."""

    async def send_reset_link(self, email: str, token: str) -> None: ...


class LoggingResetNotifier:
    """Notifier that logs the request without exposing the token."""

    async def send_reset_link(self, email: str, token: str) -> None:
        logger.info("Password reset link issued", email=email)
