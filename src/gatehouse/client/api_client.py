"""Typed async HTTP client for the Gatehouse auth API."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from gatehouse.core.logging import get_logger
from gatehouse.domain.entities import Permission, Role, User
from gatehouse.domain.exceptions import (
    AccessDenied,
    AccountSuspended,
    AuthenticationFailed,
    GatehouseError,
    NotFound,
    TransientNetworkFailure,
    ValidationFailed,
)
from gatehouse.domain.services import Credentials

logger = get_logger(__name__)


@dataclass
class SessionPayload:
    """Principal snapshot returned by login and by the current-user endpoint.

    Attributes:
        user: The authenticated user.
        roles: Roles held by the user.
        permissions: Permissions the user holds (every permission for owners).
        token: Bearer token, only present on login.
    """

    user: User
    roles: list[Role] = field(default_factory=list)
    permissions: list[Permission] = field(default_factory=list)
    token: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionPayload":
        return cls(
            user=User.from_dict(data["user"]),
            roles=[Role.from_dict(r) for r in data.get("roles") or []],
            permissions=[Permission.from_dict(p) for p in data.get("permissions") or []],
            token=data.get("accessToken"),
        )


class AuthBackend(Protocol):
    """Server operations a session manager depends on."""

    async def login(self, credentials: Credentials) -> SessionPayload: ...

    async def fetch_me(self, token: str) -> SessionPayload: ...

    async def logout(self, token: str) -> None: ...


def error_for(status_code: int, body: Mapping[str, Any]) -> GatehouseError:
    """Map an error response to a domain exception."""
    message = body.get("message") or None
    if status_code == 401:
        return AuthenticationFailed(message)
    if status_code == 423:
        return AccountSuspended(message)
    if status_code == 422:
        return ValidationFailed(message, body.get("errors") or {})
    if status_code == 404:
        return NotFound(message)
    if status_code == 403:
        return AccessDenied(message)
    if status_code >= 500:
        return TransientNetworkFailure(message)
    return GatehouseError(message)


class HttpAuthBackend:
    """Async client for the auth endpoints.

    Args:
        base_url: Server root, e.g. ``"https://admin.example.com"``.
        api_prefix: Prefix the API is mounted under.
        client: Pre-configured httpx client; one is created when omitted.
        timeout: Request timeout in seconds for the created client.
    """

    def __init__(
        self,
        base_url: str = "",
        api_prefix: str = "/api/v1",
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None
        self._prefix = f"{api_prefix.rstrip('/')}/auth"

    async def _request(
        self, method: str, path: str, token: str | None = None, **kwargs: Any
    ) -> Any:
        """Send a request and return the ``data`` member of the envelope."""
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(
                method, f"{self._prefix}{path}", headers=headers, **kwargs
            )
        except httpx.TransportError as e:
            logger.warning("Auth API unreachable", method=method, path=path, error=str(e))
            raise TransientNetworkFailure() from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, Mapping):
            body = {}

        if response.status_code >= 400:
            raise error_for(response.status_code, body)
        return body.get("data")

    async def login(self, credentials: Credentials) -> SessionPayload:
        """POST /login."""
        data = await self._request(
            "POST",
            "/login",
            json={
                "email": credentials.email,
                "password": credentials.password,
                "rememberMe": credentials.remember_me,
            },
        )
        return SessionPayload.from_dict(data)

    async def fetch_me(self, token: str) -> SessionPayload:
        """GET /user."""
        data = await self._request("GET", "/user", token=token)
        return SessionPayload.from_dict(data)

    async def logout(self, token: str) -> None:
        """GET /logout."""
        await self._request("GET", "/logout", token=token)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
