"""Unit tests for the in-memory role-permission graph."""

import pytest

from gatehouse.domain.entities import Permission
from gatehouse.domain.exceptions import ValidationFailed


def ids(permissions):
    return [p.id for p in permissions]


@pytest.mark.asyncio
async def test_permissions_for_user_is_deduplicated_union(graph):
    await graph.attach_permissions(2, [1, 2])
    await graph.attach_permissions(3, [1, 3])
    await graph.assign_roles(10, [2, 3])

    assert ids(await graph.permissions_for_user(10)) == [1, 2, 3]


@pytest.mark.asyncio
async def test_user_without_roles_has_no_permissions(graph):
    assert await graph.permissions_for_user(10) == []


@pytest.mark.asyncio
async def test_attach_twice_is_noop(graph):
    await graph.assign_roles(10, [2])
    first = await graph.attach_permissions(2, [1, 2])
    before = ids(await graph.permissions_for_user(10))

    second = await graph.attach_permissions(2, [2, 1, 1])

    assert first == [1, 2]
    assert second == []
    assert ids(await graph.permissions_for_user(10)) == before


@pytest.mark.asyncio
async def test_detach_unbound_is_noop(graph):
    await graph.attach_permissions(2, [1])

    removed = await graph.detach_permissions(2, [2, 6])

    assert removed == []
    assert ids(await graph.permissions_for_role(2)) == [1]


@pytest.mark.asyncio
async def test_sync_permissions_reports_changes(graph):
    await graph.attach_permissions(2, [1, 2])

    changes = await graph.sync_permissions(2, [2, 3])

    assert changes.attached == [3]
    assert changes.detached == [1]
    assert ids(await graph.permissions_for_role(2)) == [2, 3]


@pytest.mark.asyncio
async def test_attach_unknown_permission_fails(graph):
    with pytest.raises(ValidationFailed) as exc_info:
        await graph.attach_permissions(2, [1, 99])

    assert exc_info.value.errors["permission_ids"]["key"] == "exists"
    assert await graph.permissions_for_role(2) == []


@pytest.mark.asyncio
async def test_attach_to_unknown_role_fails(graph):
    with pytest.raises(ValidationFailed) as exc_info:
        await graph.attach_permissions(42, [1])

    assert "role_id" in exc_info.value.errors


@pytest.mark.asyncio
async def test_common_permissions(graph):
    await graph.attach_permissions(2, [1, 2, 3])
    await graph.attach_permissions(3, [2, 3, 6])

    assert ids(await graph.common_permissions([2, 3])) == [2, 3]
    assert await graph.common_permissions([]) == []


@pytest.mark.asyncio
async def test_roles_for_user_sorted_by_order(graph):
    await graph.assign_roles(10, [3, 1])

    roles = await graph.roles_for_user(10)

    assert [r.name for r in roles] == ["super-admin", "viewer"]


@pytest.mark.asyncio
async def test_sync_roles(graph):
    await graph.assign_roles(10, [2])

    changes = await graph.sync_roles(10, [3])

    assert changes.attached == [3]
    assert changes.detached == [2]
    assert [r.id for r in await graph.roles_for_user(10)] == [3]


@pytest.mark.asyncio
async def test_detach_last_role_keeps_user(graph):
    await graph.attach_permissions(2, [1, 2])
    await graph.assign_roles(10, [2])

    await graph.detach_roles(10, [2])

    assert await graph.permissions_for_user(10) == []
    # The user still exists: roles can be assigned again.
    assert await graph.assign_roles(10, [3]) == [3]


@pytest.mark.asyncio
async def test_delete_role_cascades(graph):
    await graph.attach_permissions(2, [1, 2])
    await graph.attach_permissions(3, [1])
    await graph.assign_roles(10, [2, 3])
    await graph.assign_roles(11, [2])

    assert await graph.delete_role(2) is True

    assert ids(await graph.permissions_for_user(10)) == [1]
    assert await graph.permissions_for_user(11) == []
    assert await graph.roles_for_user(11) == []
    assert await graph.delete_role(2) is False


@pytest.mark.asyncio
async def test_delete_permission_unbinds_it(graph):
    await graph.attach_permissions(2, [1, 2])
    await graph.assign_roles(10, [2])

    assert await graph.delete_permission(1) is True

    assert ids(await graph.permissions_for_user(10)) == [2]
    assert 1 not in ids(await graph.all_permissions())


@pytest.mark.asyncio
async def test_delete_user(graph):
    await graph.assign_roles(10, [2])

    assert await graph.delete_user(10) is True
    assert await graph.delete_user(10) is False
    with pytest.raises(ValidationFailed):
        await graph.assign_roles(10, [2])


def test_duplicate_permission_key_rejected(graph):
    with pytest.raises(ValidationFailed) as exc_info:
        graph.add_permission(Permission(id=None, key="view-dashboard", action="view", subject="x"))

    assert exc_info.value.errors["key"]["key"] == "unique"


@pytest.mark.asyncio
async def test_flag_queries(graph):
    assert ids(await graph.public_permissions()) == [5]
    assert ids(await graph.always_allowed_permissions()) == [4]
