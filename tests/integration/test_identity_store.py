"""Integration tests for SqlIdentityStore."""

import pytest

from gatehouse.domain.exceptions import AccountSuspended, AuthenticationFailed, NotFound
from gatehouse.domain.services import AuthorizationGate, Credentials
from gatehouse.infrastructure.auth import JWTService
from gatehouse.infrastructure.persistence.identity_store import SqlIdentityStore

PASSWORD = "Password123!"


@pytest.fixture
def store(db_session):
    return SqlIdentityStore(db_session, JWTService(secret_key="identity-store-test-secret-0123456789"))


@pytest.mark.asyncio
async def test_authenticate_by_email_or_username(store, make_user):
    await make_user("jane@example.com", username="jane")

    by_email = await store.authenticate(Credentials("jane@example.com", PASSWORD))
    by_username = await store.authenticate(Credentials("jane", PASSWORD))

    assert by_email.user.email == "jane@example.com"
    assert by_username.user.id == by_email.user.id
    assert by_email.token != by_username.token


@pytest.mark.asyncio
async def test_wrong_password_and_unknown_user_look_the_same(store, make_user):
    await make_user("jane@example.com")

    with pytest.raises(AuthenticationFailed) as wrong:
        await store.authenticate(Credentials("jane@example.com", "nope"))
    with pytest.raises(AuthenticationFailed) as unknown:
        await store.authenticate(Credentials("ghost@example.com", PASSWORD))

    assert wrong.value.message == unknown.value.message


@pytest.mark.asyncio
async def test_suspended_user_cannot_log_in(store, make_user):
    await make_user("jane@example.com", active=False)

    with pytest.raises(AccountSuspended):
        await store.authenticate(Credentials("jane@example.com", PASSWORD))


@pytest.mark.asyncio
async def test_remember_me_extends_expiry(store, make_user):
    await make_user("jane@example.com")

    normal = await store.authenticate(Credentials("jane@example.com", PASSWORD))
    remembered = await store.authenticate(Credentials("jane@example.com", PASSWORD, True))

    assert remembered.expires_in > normal.expires_in


@pytest.mark.asyncio
async def test_resolve_and_revoke_token(store, make_user):
    await make_user("jane@example.com")
    result = await store.authenticate(Credentials("jane@example.com", PASSWORD))

    resolved = await store.resolve_token(result.token)
    assert resolved is not None and resolved.email == "jane@example.com"

    await store.revoke_token(result.token)
    assert await store.resolve_token(result.token) is None


@pytest.mark.asyncio
async def test_resolve_rejects_garbage(store):
    assert await store.resolve_token("not-a-jwt") is None


@pytest.mark.asyncio
async def test_resolve_rejects_token_signed_elsewhere(store, make_user):
    await make_user("jane@example.com")
    result = await store.authenticate(Credentials("jane@example.com", PASSWORD))

    other = SqlIdentityStore(store.session, JWTService(secret_key="a-different-secret-0123456789abcdef"))

    assert await other.resolve_token(result.token) is None


@pytest.mark.asyncio
async def test_gate_revokes_token_of_suspended_user(store, make_user):
    user = await make_user("jane@example.com")
    result = await store.authenticate(Credentials("jane@example.com", PASSWORD))

    suspended = await store.set_active(user.id, False)
    assert suspended.active is False

    with pytest.raises(AccountSuspended):
        await AuthorizationGate(store).evaluate(result.token)
    assert await store.resolve_token(result.token) is None


@pytest.mark.asyncio
async def test_reactivation_drops_old_tokens(store, make_user):
    user = await make_user("jane@example.com")
    result = await store.authenticate(Credentials("jane@example.com", PASSWORD))
    await store.set_active(user.id, False)

    await store.set_active(user.id, True)

    assert await store.resolve_token(result.token) is None


@pytest.mark.asyncio
async def test_revoke_all_tokens(store, make_user):
    user = await make_user("jane@example.com")
    first = await store.authenticate(Credentials("jane@example.com", PASSWORD))
    second = await store.authenticate(Credentials("jane@example.com", PASSWORD))

    assert await store.revoke_all_tokens(user.id) == 2

    assert await store.resolve_token(first.token) is None
    assert await store.resolve_token(second.token) is None


@pytest.mark.asyncio
async def test_get_by_id_loads_roles(seeded, make_user):
    store = SqlIdentityStore(seeded)
    user = await make_user("jane@example.com", ["admin", "user"])

    entity = await store.get_by_id(user.id)

    assert [r.name for r in entity.roles] == ["admin", "user"]
    with pytest.raises(NotFound):
        await store.get_by_id(9999)
