"""Client-side session management for Gatehouse API consumers."""

from gatehouse.client.api_client import AuthBackend, HttpAuthBackend, SessionPayload
from gatehouse.client.session import SessionEvent, SessionManager, SessionState, SessionStatus
from gatehouse.client.watchers import ConnectivityWatcher, IdleWatcher, PeriodicRefresher

__all__ = [
    "AuthBackend",
    "ConnectivityWatcher",
    "HttpAuthBackend",
    "IdleWatcher",
    "PeriodicRefresher",
    "SessionEvent",
    "SessionManager",
    "SessionPayload",
    "SessionState",
    "SessionStatus",
]
