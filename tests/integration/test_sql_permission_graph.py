"""Integration tests for the SQL-backed permission graph."""

import pytest
from sqlalchemy import func, select

from gatehouse.domain.exceptions import ValidationFailed
from gatehouse.domain.services import AbilityResolver, PermissionCache
from gatehouse.infrastructure.persistence.models import (
    AccessTokenModel,
    PermissionModel,
    RoleModel,
    RolePermissionModel,
    UserRoleModel,
)
from gatehouse.infrastructure.persistence.permission_graph import SqlPermissionGraph
from gatehouse.infrastructure.persistence.repositories import (
    AccessTokenRepository,
    PermissionRepository,
    RoleRepository,
)


async def count(session, model, *where) -> int:
    query = select(func.count()).select_from(model)
    for clause in where:
        query = query.where(clause)
    return (await session.execute(query)).scalar_one()


async def make_role(session, name: str) -> RoleModel:
    return await RoleRepository(session).create(RoleModel(name=name))


async def make_permission(session, action: str, subject: str) -> PermissionModel:
    return await PermissionRepository(session).create(
        PermissionModel(key=f"{action}-{subject}", action=action, subject=subject)
    )


@pytest.mark.asyncio
async def test_permissions_for_user_deduplicates(db_session, make_user):
    graph = SqlPermissionGraph(db_session)
    first = await make_role(db_session, "first")
    second = await make_role(db_session, "second")
    shared = await make_permission(db_session, "view", "dashboard")
    only_second = await make_permission(db_session, "edit", "posts")
    await graph.attach_permissions(first.id, [shared.id])
    await graph.attach_permissions(second.id, [shared.id, only_second.id])
    await db_session.commit()

    user = await make_user("jane@example.com", ["first", "second"])

    permissions = await graph.permissions_for_user(user.id)
    assert [p.key for p in permissions] == ["view-dashboard", "edit-posts"]
    roles = await graph.roles_for_user(user.id)
    assert {r.name for r in roles} == {"first", "second"}


@pytest.mark.asyncio
async def test_attach_is_idempotent(db_session):
    graph = SqlPermissionGraph(db_session)
    role = await make_role(db_session, "editor")
    permission = await make_permission(db_session, "edit", "posts")

    assert await graph.attach_permissions(role.id, [permission.id, permission.id]) == [permission.id]
    assert await graph.attach_permissions(role.id, [permission.id]) == []

    assert await count(db_session, RolePermissionModel) == 1


@pytest.mark.asyncio
async def test_attach_unknown_permission_fails_without_writing(db_session):
    graph = SqlPermissionGraph(db_session)
    role = await make_role(db_session, "editor")
    permission = await make_permission(db_session, "edit", "posts")

    with pytest.raises(ValidationFailed) as exc_info:
        await graph.attach_permissions(role.id, [permission.id, 999])

    assert exc_info.value.errors["permission_ids"]["key"] == "exists"
    assert await count(db_session, RolePermissionModel) == 0


@pytest.mark.asyncio
async def test_sync_replaces_binding_set(db_session):
    graph = SqlPermissionGraph(db_session)
    role = await make_role(db_session, "editor")
    view = await make_permission(db_session, "view", "posts")
    edit = await make_permission(db_session, "edit", "posts")
    delete = await make_permission(db_session, "delete", "posts")
    await graph.attach_permissions(role.id, [view.id, edit.id])

    changes = await graph.sync_permissions(role.id, [edit.id, delete.id])

    assert changes.attached == [delete.id]
    assert changes.detached == [view.id]
    assert [p.id for p in await graph.permissions_for_role(role.id)] == [edit.id, delete.id]


@pytest.mark.asyncio
async def test_detach_ignores_unbound(db_session):
    graph = SqlPermissionGraph(db_session)
    role = await make_role(db_session, "editor")
    view = await make_permission(db_session, "view", "posts")
    edit = await make_permission(db_session, "edit", "posts")
    await graph.attach_permissions(role.id, [view.id])

    assert await graph.detach_permissions(role.id, [view.id, edit.id]) == [view.id]
    assert await graph.permissions_for_role(role.id) == []


@pytest.mark.asyncio
async def test_common_permissions(db_session):
    graph = SqlPermissionGraph(db_session)
    a = await make_role(db_session, "a")
    b = await make_role(db_session, "b")
    view = await make_permission(db_session, "view", "posts")
    edit = await make_permission(db_session, "edit", "posts")
    await graph.attach_permissions(a.id, [view.id, edit.id])
    await graph.attach_permissions(b.id, [view.id])

    common = await graph.common_permissions([a.id, b.id, b.id])

    assert [p.id for p in common] == [view.id]
    assert await graph.common_permissions([]) == []


@pytest.mark.asyncio
async def test_sync_roles(db_session, make_user):
    graph = SqlPermissionGraph(db_session)
    a = await make_role(db_session, "a")
    b = await make_role(db_session, "b")
    await db_session.commit()
    user = await make_user("jane@example.com", ["a"])

    changes = await graph.sync_roles(user.id, [b.id])

    assert changes.attached == [b.id]
    assert changes.detached == [a.id]
    assert [r.name for r in await graph.roles_for_user(user.id)] == ["b"]


@pytest.mark.asyncio
async def test_assign_unknown_role_fails(db_session, make_user):
    user = await make_user("jane@example.com")

    with pytest.raises(ValidationFailed):
        await SqlPermissionGraph(db_session).assign_roles(user.id, [42])


@pytest.mark.asyncio
async def test_delete_role_removes_bindings(db_session, make_user):
    graph = SqlPermissionGraph(db_session)
    role = await make_role(db_session, "editor")
    permission = await make_permission(db_session, "edit", "posts")
    await graph.attach_permissions(role.id, [permission.id])
    await db_session.commit()
    user = await make_user("jane@example.com", ["editor"])

    assert await graph.delete_role(role.id) is True

    assert await count(db_session, RolePermissionModel) == 0
    assert await count(db_session, UserRoleModel) == 0
    assert await count(db_session, PermissionModel) == 1
    assert await graph.roles_for_user(user.id) == []
    assert await graph.delete_role(role.id) is False


@pytest.mark.asyncio
async def test_delete_permission_removes_bindings(db_session):
    graph = SqlPermissionGraph(db_session)
    role = await make_role(db_session, "editor")
    permission = await make_permission(db_session, "edit", "posts")
    await graph.attach_permissions(role.id, [permission.id])

    assert await graph.delete_permission(permission.id) is True

    assert await count(db_session, RolePermissionModel) == 0
    assert await count(db_session, RoleModel) == 1


@pytest.mark.asyncio
async def test_delete_user_removes_roles_and_tokens(db_session, make_user):
    from datetime import datetime, timedelta, timezone

    await make_role(db_session, "editor")
    await db_session.commit()
    user = await make_user("jane@example.com", ["editor"])
    await AccessTokenRepository(db_session).create(
        "token-1", user.id, datetime.now(timezone.utc) + timedelta(hours=1)
    )

    assert await SqlPermissionGraph(db_session).delete_user(user.id) is True

    assert await count(db_session, UserRoleModel) == 0
    assert await count(db_session, AccessTokenModel) == 0


@pytest.mark.asyncio
async def test_resolver_over_seeded_database(seeded, make_user):
    graph = SqlPermissionGraph(seeded)
    resolver = AbilityResolver(graph, PermissionCache())

    owner = await make_user("owner@example.com", ["super-admin"])
    member = await make_user("member@example.com", ["user"])
    nobody = await make_user("nobody@example.com")

    owner_entity = owner.to_entity(roles=await graph.roles_for_user(owner.id))
    member_entity = member.to_entity(roles=await graph.roles_for_user(member.id))
    nobody_entity = nobody.to_entity(roles=[])

    assert await resolver.can(owner_entity, "manage", "permissions")
    assert await resolver.can(member_entity, "view", "dashboard")
    assert not await resolver.can(member_entity, "manage", "users")
    assert await resolver.can(nobody_entity, "edit", "own-profile")
    assert await resolver.can(None, "view", "public-content")
    assert not await resolver.can(None, "view", "dashboard")
