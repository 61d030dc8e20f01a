"""Unit tests for HttpAuthBackend."""

import httpx
import pytest

from gatehouse.client import HttpAuthBackend
from gatehouse.domain.exceptions import (
    AccountSuspended,
    AuthenticationFailed,
    NotFound,
    TransientNetworkFailure,
    ValidationFailed,
)
from gatehouse.domain.services import Credentials

USER = {
    "id": 1,
    "name": "Jane",
    "email": "jane@example.com",
    "active": True,
    "roles": [{"id": 2, "name": "editor", "displayName": "Editor"}],
}
PERMISSIONS = [
    {"id": 1, "key": "view-dashboard", "action": "view", "subject": "dashboard", "alwaysAllow": False}
]


def make_backend(handler) -> HttpAuthBackend:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
    return HttpAuthBackend(client=client)


def envelope(data=None, message="", success=True, **extra):
    return {"success": success, "message": message, "data": data, **extra}


@pytest.mark.asyncio
async def test_login_parses_payload():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json=envelope(
                {
                    "accessToken": "abc",
                    "tokenType": "Bearer",
                    "expiresIn": 3600,
                    "user": USER,
                    "roles": USER["roles"],
                    "permissions": PERMISSIONS,
                }
            ),
        )

    payload = await make_backend(handler).login(Credentials("jane@example.com", "secret", True))

    assert requests[0].url.path == "/api/v1/auth/login"
    assert b'"rememberMe":true' in requests[0].content.replace(b" ", b"")
    assert payload.token == "abc"
    assert payload.user.email == "jane@example.com"
    assert payload.roles[0].label == "Editor"
    assert payload.permissions[0].key == "view-dashboard"


@pytest.mark.asyncio
async def test_fetch_me_sends_bearer_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        seen["path"] = request.url.path
        return httpx.Response(
            200,
            json=envelope({"user": USER, "roles": [], "permissions": [], "abilities": []}),
        )

    payload = await make_backend(handler).fetch_me("abc")

    assert seen == {"auth": "Bearer abc", "path": "/api/v1/auth/user"}
    assert payload.token is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code, error",
    [
        (401, AuthenticationFailed),
        (423, AccountSuspended),
        (404, NotFound),
        (503, TransientNetworkFailure),
    ],
)
async def test_error_mapping(status_code, error):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=envelope(message="nope", success=False))

    with pytest.raises(error) as exc_info:
        await make_backend(handler).fetch_me("abc")

    assert exc_info.value.message == "nope"


@pytest.mark.asyncio
async def test_validation_errors_are_kept():
    errors = {"email": {"key": "required", "message": "The email field is required."}}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            422, json=envelope(message="Validation failed", success=False, errors=errors)
        )

    with pytest.raises(ValidationFailed) as exc_info:
        await make_backend(handler).login(Credentials("", "secret"))

    assert exc_info.value.errors == errors


@pytest.mark.asyncio
async def test_transport_error_is_transient():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransientNetworkFailure):
        await make_backend(handler).logout("abc")


@pytest.mark.asyncio
async def test_non_json_error_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="<html>nope</html>")

    with pytest.raises(AuthenticationFailed):
        await make_backend(handler).fetch_me("abc")
