"""Client-side session lifecycle.

A :class:`SessionManager` owns the token, the user snapshot and the derived
abilities of one API client. State moves ``idle -> loading -> authenticated``
and back to ``idle`` on logout, idle timeout or rejection by the server.

All state changes happen synchronously on the event loop, so ability checks
see them immediately. Refreshes are coalesced, and a refresh that resolves
after a logout started is discarded.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from gatehouse.client.api_client import AuthBackend, SessionPayload
from gatehouse.client.watchers import ConnectivityWatcher, IdleWatcher, PeriodicRefresher
from gatehouse.core.logging import get_logger
from gatehouse.domain.entities import ANY_SUBJECT, Permission, Role, User, ability_keys
from gatehouse.domain.exceptions import AccountSuspended, AuthenticationFailed
from gatehouse.domain.services import Credentials

logger = get_logger(__name__)

DEFAULT_IDLE_TIMEOUT = 15 * 60
DEFAULT_REFRESH_INTERVAL = 12 * 60


class SessionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"


class SessionEvent(str, Enum):
    """Notifications delivered to session listeners."""

    AUTHENTICATED = "authenticated"
    REFRESHED = "refreshed"
    LOGGED_OUT = "logged_out"
    IDLE_TIMEOUT = "idle_timeout"
    UNAUTHORIZED = "unauthorized"
    SUSPENDED = "suspended"


@dataclass
class SessionState:
    """Observable session data."""

    token: str | None = None
    user: User | None = None
    roles: list[Role] = field(default_factory=list)
    permissions: list[Permission] = field(default_factory=list)
    abilities: list[str] = field(default_factory=list)
    unauthorized: bool = False
    suspended: bool = False
    status: SessionStatus = SessionStatus.IDLE
    last_refresh_at: datetime | None = None


Listener = Callable[[SessionEvent, SessionState], None]


def _as_user(user: User | Mapping[str, Any]) -> User:
    return user if isinstance(user, User) else User.from_dict(user)


def _as_roles(roles: Iterable[Role | Mapping[str, Any]]) -> list[Role]:
    return [r if isinstance(r, Role) else Role.from_dict(r) for r in roles]


def _as_permissions(permissions: Iterable[Permission | Mapping[str, Any]]) -> list[Permission]:
    return [p if isinstance(p, Permission) else Permission.from_dict(p) for p in permissions]


def role_permissions(roles: Iterable[Role]) -> list[Permission]:
    """Permissions embedded in role snapshots, unique by ``action:subject``."""
    unique: dict[tuple[str, str], Permission] = {}
    for role in roles:
        for permission in role.permissions:
            unique.setdefault((permission.action, permission.subject), permission)
    return list(unique.values())


class SessionManager:
    """Session context for an API client.

    Args:
        backend: Server operations (login, current user, logout).
        idle_timeout: Seconds without activity before a local logout.
        refresh_interval: Seconds between background refreshes.
        clock: Monotonic clock used for idle tracking.
        wall_clock: Returns the current time for ``last_refresh_at``.
        connectivity_probe: Optional coroutine function reporting reachability;
            enables the connectivity watcher.
        idle_check_interval: Seconds between idle checks; defaults to a
            fraction of ``idle_timeout``.
        connectivity_interval: Seconds between connectivity probes.
    """

    def __init__(
        self,
        backend: AuthBackend,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] | None = None,
        connectivity_probe: Callable[[], Awaitable[bool]] | None = None,
        idle_check_interval: float | None = None,
        connectivity_interval: float = 30.0,
    ) -> None:
        if idle_timeout <= 0 or refresh_interval <= 0:
            raise ValueError("Session intervals must be positive")

        self.backend = backend
        self.idle_timeout = idle_timeout
        self.refresh_interval = refresh_interval
        self._clock = clock
        self._wall_clock = wall_clock or (lambda: datetime.now(timezone.utc))

        self._state = SessionState()
        self._epoch = 0
        self._last_activity = clock()
        self._online = True
        self._started = False
        self._refresh_task: asyncio.Task | None = None
        self._listeners: list[Listener] = []

        self._idle_watcher = IdleWatcher(
            self, idle_check_interval or min(idle_timeout / 4, 30.0)
        )
        self._refresher = PeriodicRefresher(self, refresh_interval)
        self._connectivity = (
            ConnectivityWatcher(self, connectivity_probe, connectivity_interval)
            if connectivity_probe
            else None
        )

    async def __aenter__(self) -> "SessionManager":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- state ------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def is_authenticated(self) -> bool:
        return self._state.status is SessionStatus.AUTHENTICATED and self._state.token is not None

    @property
    def online(self) -> bool:
        return self._online

    @property
    def timers_running(self) -> bool:
        return self._idle_watcher.running or self._refresher.running

    @property
    def display_name(self) -> str | None:
        user = self._state.user
        if user is None:
            return None
        return user.name or user.username or user.email

    def can(self, action: str, subject: str) -> bool:
        """Check the cached abilities, honouring the ``Any`` wildcard."""
        abilities = self._state.abilities
        return f"{action}:{subject}" in abilities or f"{action}:{ANY_SUBJECT}" in abilities

    def has_ability(self, key: str) -> bool:
        return key in self._state.abilities

    def has_role(self, name: str) -> bool:
        """Check role membership by name (case-insensitive)."""
        wanted = name.lower()
        return any(role.name.lower() == wanted for role in self._state.roles)

    # -- listeners --------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self._state)
            except Exception as e:
                logger.warning("Session listener failed", session_event=event.value, error=str(e))

    # -- transitions ------------------------------------------------------

    def hydrate(
        self,
        user: User | Mapping[str, Any],
        token: str,
        roles: Iterable[Role | Mapping[str, Any]] | None = None,
        permissions: Iterable[Permission | Mapping[str, Any]] | None = None,
    ) -> SessionState:
        """Install an authenticated session.

        Empty or missing ``roles`` fall back to the roles embedded in the user.
        Abilities are recomputed from ``permissions``; when it is omitted they
        come from the permissions embedded in the resolved roles.
        """
        user = _as_user(user)
        self._epoch += 1
        state = self._state
        state.token = token
        state.user = user
        state.roles = _as_roles(roles) if roles else list(user.roles)
        if permissions is None:
            self._set_permissions(role_permissions(state.roles))
        else:
            self._set_permissions(_as_permissions(permissions))
        state.unauthorized = False
        state.suspended = False
        state.status = SessionStatus.AUTHENTICATED
        self._last_activity = self._clock()

        if self._started:
            self._start_timers()

        logger.debug("Session hydrated", user_id=user.id, abilities=len(state.abilities))
        self._emit(SessionEvent.AUTHENTICATED)
        return state

    def update_permissions(self, permissions: Iterable[Permission | Mapping[str, Any]]) -> None:
        """Replace the permission set and recompute abilities."""
        self._set_permissions(_as_permissions(permissions))

    def _set_permissions(self, permissions: list[Permission]) -> None:
        self._state.permissions = permissions
        self._state.abilities = ability_keys(permissions)

    async def login(self, credentials: Credentials) -> SessionState:
        """Authenticate against the server and hydrate the session.

        On failure the previous status is restored and the error propagates;
        nothing is hydrated. If the session was cleared while the request was
        pending it stays idle.
        """
        prior = self._state.status
        epoch = self._epoch
        self._state.status = SessionStatus.LOADING
        try:
            payload = await self.backend.login(credentials)
        except (Exception, asyncio.CancelledError):
            if epoch == self._epoch and self._state.token is not None:
                self._state.status = prior
            else:
                self._state.status = SessionStatus.IDLE
            raise

        logger.info("Logged in", user_id=payload.user.id)
        return self.hydrate(payload.user, payload.token, payload.roles, payload.permissions)

    async def logout(self) -> None:
        """Revoke the token on the server, then clear the session.

        Server errors are logged and ignored; the local session is always
        cleared.
        """
        self._epoch += 1
        self._stop_timers()
        token = self._state.token

        if token is not None:
            try:
                await self.backend.logout(token)
            except Exception as e:
                logger.warning("Token revocation failed, logging out locally", error=str(e))

        self._clear()
        logger.info("Logged out")
        self._emit(SessionEvent.LOGGED_OUT)

    def hard_logout(self) -> None:
        """Clear the session locally without contacting the server."""
        self._epoch += 1
        self._stop_timers()
        self._clear()
        self._emit(SessionEvent.LOGGED_OUT)

    def _clear(self) -> None:
        state = self._state
        state.token = None
        state.user = None
        state.roles = []
        state.permissions = []
        state.abilities = []
        state.status = SessionStatus.IDLE

    async def refresh(self) -> bool:
        """Re-fetch the current user.

        Concurrent calls share one request. Returns True when the session was
        updated.
        """
        if self._refresh_task is None:
            if not self.is_authenticated:
                return False
            self._refresh_task = asyncio.get_running_loop().create_task(self._refresh())
        return await asyncio.shield(self._refresh_task)

    async def _refresh(self) -> bool:
        epoch = self._epoch
        try:
            payload: SessionPayload = await self.backend.fetch_me(self._state.token)
        except (AuthenticationFailed, AccountSuspended) as e:
            if epoch == self._epoch:
                await self.handle_api_error(e)
            return False
        except Exception as e:
            logger.warning("Session refresh failed, keeping current session", error=str(e))
            return False
        finally:
            self._refresh_task = None

        if epoch != self._epoch or not self.is_authenticated:
            logger.debug("Discarding refresh result after logout")
            return False

        state = self._state
        state.user = payload.user
        state.roles = payload.roles or list(payload.user.roles)
        self._set_permissions(payload.permissions)
        state.last_refresh_at = self._wall_clock()
        self._emit(SessionEvent.REFRESHED)
        return True

    async def handle_api_error(self, exc: Exception) -> bool:
        """React to an error returned by any API call.

        Returns:
            True if the error ended the session.
        """
        if isinstance(exc, AccountSuspended):
            self._state.unauthorized = True
            self._state.suspended = True
            logger.warning("Account suspended, ending session")
            self._emit(SessionEvent.SUSPENDED)
            self.hard_logout()
            return True
        if isinstance(exc, AuthenticationFailed):
            self._state.unauthorized = True
            logger.info("Session rejected by server")
            self._emit(SessionEvent.UNAUTHORIZED)
            await self.logout()
            return True
        return False

    # -- activity and connectivity ----------------------------------------

    def record_activity(self) -> None:
        self._last_activity = self._clock()

    def check_idle(self) -> bool:
        """Log out locally if idle for longer than ``idle_timeout``.

        Returns:
            True if the session was ended.
        """
        if not self.is_authenticated:
            return False
        if self._clock() - self._last_activity < self.idle_timeout:
            return False

        logger.info("Session idle timeout", idle_timeout=self.idle_timeout)
        self._emit(SessionEvent.IDLE_TIMEOUT)
        self.hard_logout()
        return True

    async def set_online(self, online: bool) -> None:
        """Record connectivity; coming back online refreshes the session."""
        was_online, self._online = self._online, online
        if online and not was_online and self.is_authenticated:
            logger.debug("Back online, refreshing session")
            await self.refresh()

    # -- background tasks -------------------------------------------------

    def _start_timers(self) -> None:
        self._idle_watcher.start()
        self._refresher.start()

    def _stop_timers(self) -> list[asyncio.Task]:
        stopped = [self._idle_watcher.stop(), self._refresher.stop()]
        return [task for task in stopped if task is not None]

    async def start(self) -> None:
        """Run the background watchers."""
        self._started = True
        if self._connectivity is not None:
            self._connectivity.start()
        if self.is_authenticated:
            self._start_timers()

    async def close(self) -> None:
        """Cancel the background watchers and wait for them to finish."""
        self._started = False
        tasks = self._stop_timers()
        if self._connectivity is not None:
            task = self._connectivity.stop()
            if task is not None:
                tasks.append(task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
