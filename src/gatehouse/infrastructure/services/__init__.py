"""Outbound collaborators used by the API."""

from gatehouse.infrastructure.services.notifier import LoggingResetNotifier, PasswordResetNotifier

__all__ = ["LoggingResetNotifier", "PasswordResetNotifier"]
