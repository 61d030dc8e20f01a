"""Integration tests for the role endpoints and role-permission bindings."""

import pytest
import pytest_asyncio

ROLES = "/api/v1/auth/roles"
PERMISSIONS = "/api/v1/auth/permissions"


@pytest_asyncio.fixture
async def admin_headers(client, seeded, make_user, login_as):
    await make_user("owner@example.com", ["super-admin"])
    return await login_as("owner@example.com")


async def create_role(client, headers, name: str) -> int:
    response = await client.post(ROLES, json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]


async def create_permission(client, headers, action: str, subject: str) -> int:
    response = await client.post(
        PERMISSIONS, json={"action": action, "subject": subject}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]


@pytest.mark.asyncio
async def test_requires_manage_roles(client, seeded, make_user, login_as):
    await make_user("jane@example.com", ["user"])
    headers = await login_as("jane@example.com")

    response = await client.get(ROLES, headers=headers)

    assert response.status_code == 403
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_list_roles_with_counts(client, admin_headers):
    response = await client.get(ROLES, headers=admin_headers)

    assert response.status_code == 200
    roles = {r["name"]: r for r in response.json()["data"]}
    assert roles["super-admin"]["isOwner"] is True
    assert roles["super-admin"]["usersCount"] == 1
    assert roles["super-admin"]["permissionsCount"] == 6
    assert roles["user"]["permissionsCount"] == 3


@pytest.mark.asyncio
async def test_create_role_with_duplicate_name(client, admin_headers):
    response = await client.post(ROLES, json={"name": "admin"}, headers=admin_headers)

    assert response.status_code == 422
    assert response.json()["errors"] == {
        "name": {"key": "unique", "message": "The name has already been taken."}
    }


@pytest.mark.asyncio
async def test_update_and_get_role(client, admin_headers):
    role_id = await create_role(client, admin_headers, "editor")

    response = await client.put(
        f"{ROLES}/{role_id}",
        json={"name": "editor", "displayName": "Editor", "order": 5},
        headers=admin_headers,
    )
    assert response.status_code == 200

    data = (await client.get(f"{ROLES}/{role_id}", headers=admin_headers)).json()["data"]
    assert data["displayName"] == "Editor"
    assert data["order"] == 5


@pytest.mark.asyncio
async def test_get_missing_role(client, admin_headers):
    response = await client.get(f"{ROLES}/999", headers=admin_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_attach_to_single_role_is_sync_and_idempotent(client, admin_headers):
    role_id = await create_role(client, admin_headers, "editor")
    view = await create_permission(client, admin_headers, "view", "posts")
    edit = await create_permission(client, admin_headers, "edit", "posts")
    url = f"{ROLES}/{role_id}/permissions"

    first = await client.post(url, json={"permissionIds": [view, edit]}, headers=admin_headers)
    second = await client.post(url, json={"permissionIds": [view, edit]}, headers=admin_headers)

    assert first.json()["data"]["mode"] == "sync"
    assert first.json()["data"]["roles"][0]["attached"] == [view, edit]
    assert second.json()["data"]["roles"][0]["attached"] == []
    assert second.json()["data"]["roles"][0]["permissionIds"] == [view, edit]

    third = await client.post(url, json={"permissionIds": [edit]}, headers=admin_headers)
    change = third.json()["data"]["roles"][0]
    assert change["detached"] == [view]
    assert change["permissionIds"] == [edit]


@pytest.mark.asyncio
async def test_attach_to_several_roles_only_adds(client, admin_headers):
    a = await create_role(client, admin_headers, "a")
    b = await create_role(client, admin_headers, "b")
    view = await create_permission(client, admin_headers, "view", "posts")
    edit = await create_permission(client, admin_headers, "edit", "posts")
    await client.post(
        f"{ROLES}/{a}/permissions", json={"permissionIds": [view]}, headers=admin_headers
    )

    response = await client.post(
        f"{ROLES}/{a},{b}/permissions", json={"permissionIds": [edit]}, headers=admin_headers
    )

    data = response.json()["data"]
    assert data["mode"] == "attach_only"
    by_role = {r["roleId"]: r for r in data["roles"]}
    assert by_role[a]["permissionIds"] == [view, edit]
    assert by_role[b]["permissionIds"] == [edit]


@pytest.mark.asyncio
async def test_common_permissions_of_several_roles(client, admin_headers):
    a = await create_role(client, admin_headers, "a")
    b = await create_role(client, admin_headers, "b")
    view = await create_permission(client, admin_headers, "view", "posts")
    edit = await create_permission(client, admin_headers, "edit", "posts")
    await client.post(
        f"{ROLES}/{a}/permissions", json={"permissionIds": [view, edit]}, headers=admin_headers
    )
    await client.post(
        f"{ROLES}/{b}/permissions", json={"permissionIds": [view]}, headers=admin_headers
    )

    response = await client.get(f"{ROLES}/{a},{b}/permissions", headers=admin_headers)

    assert [p["id"] for p in response.json()["data"]] == [view]


@pytest.mark.asyncio
async def test_attach_unknown_permission(client, admin_headers):
    role_id = await create_role(client, admin_headers, "editor")

    response = await client.post(
        f"{ROLES}/{role_id}/permissions", json={"permissionIds": [999]}, headers=admin_headers
    )

    assert response.status_code == 422
    assert response.json()["errors"]["permission_ids"]["key"] == "exists"


@pytest.mark.asyncio
async def test_detach_permissions(client, admin_headers):
    role_id = await create_role(client, admin_headers, "editor")
    view = await create_permission(client, admin_headers, "view", "posts")
    url = f"{ROLES}/{role_id}/permissions"
    await client.post(url, json={"permissionIds": [view]}, headers=admin_headers)

    response = await client.request(
        "DELETE", url, json={"permissionIds": [view, 999]}, headers=admin_headers
    )

    change = response.json()["data"]["roles"][0]
    assert change["detached"] == [view]
    assert change["permissionIds"] == []


@pytest.mark.asyncio
async def test_invalid_role_ids(client, admin_headers):
    response = await client.get(f"{ROLES}/abc,/permissions", headers=admin_headers)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_binding_change_is_visible_immediately(client, seeded, make_user, login_as, admin_headers):
    await make_user("jane@example.com", ["user"])
    jane_headers = await login_as("jane@example.com")
    assert (await client.get(f"{ROLES}", headers=jane_headers)).status_code == 403

    roles = {r["name"]: r["id"] for r in (await client.get(ROLES, headers=admin_headers)).json()["data"]}
    permissions = (await client.get(PERMISSIONS, headers=admin_headers)).json()["data"]
    manage_roles = next(p["id"] for p in permissions if p["key"] == "manage-roles")
    response = await client.post(
        f"{ROLES}/{roles['user']},{roles['super-admin']}/permissions",
        json={"permissionIds": [manage_roles]},
        headers=admin_headers,
    )
    assert response.json()["data"]["mode"] == "attach_only"

    assert (await client.get(ROLES, headers=jane_headers)).status_code == 200


@pytest.mark.asyncio
async def test_delete_role_removes_it_from_users(client, seeded, make_user, admin_headers):
    jane = await make_user("jane@example.com", ["admin"])
    roles = (await client.get(ROLES, headers=admin_headers)).json()["data"]
    admin_role = next(r["id"] for r in roles if r["name"] == "admin")

    response = await client.delete(f"{ROLES}/{admin_role}", headers=admin_headers)
    assert response.status_code == 200

    user = (await client.get(f"/api/v1/auth/users/{jane.id}", headers=admin_headers)).json()
    assert user["data"]["roles"] == []
    assert (await client.delete(f"{ROLES}/{admin_role}", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_delete_multiple_roles(client, admin_headers):
    a = await create_role(client, admin_headers, "a")
    b = await create_role(client, admin_headers, "b")

    response = await client.request(
        "DELETE", f"{ROLES}/delete-multiple", json={"ids": [a, b]}, headers=admin_headers
    )

    assert response.status_code == 200
    names = {r["name"] for r in (await client.get(ROLES, headers=admin_headers)).json()["data"]}
    assert names == {"super-admin", "admin", "user"}
