"""Pytest configuration for unit tests."""

import pytest

from gatehouse.domain.entities import Permission, Role, User
from gatehouse.domain.services import InMemoryPermissionGraph


@pytest.fixture
def graph() -> InMemoryPermissionGraph:
    """In-memory graph with three roles and a handful of permissions.

    Roles: 1 super-admin (owner), 2 editor, 3 viewer.
    Permissions: 1 view:dashboard, 2 edit:posts, 3 view:Any,
    4 edit:own-profile (always allowed), 5 view:public-content (public),
    6 delete:posts.
    """
    g = InMemoryPermissionGraph()
    g.add_role(Role(id=1, name="super-admin", order=1, is_owner=True))
    g.add_role(Role(id=2, name="editor", order=2))
    g.add_role(Role(id=3, name="viewer", order=3))

    g.add_permission(Permission(id=1, key="view-dashboard", action="view", subject="dashboard"))
    g.add_permission(Permission(id=2, key="edit-posts", action="edit", subject="posts"))
    g.add_permission(Permission(id=3, key="view-any", action="view", subject="Any"))
    g.add_permission(
        Permission(
            id=4, key="edit-own-profile", action="edit", subject="own-profile", always_allow=True
        )
    )
    g.add_permission(
        Permission(
            id=5,
            key="view-public-content",
            action="view",
            subject="public-content",
            is_public=True,
        )
    )
    g.add_permission(Permission(id=6, key="delete-posts", action="delete", subject="posts"))

    for user_id in (10, 11, 12, 13):
        g.add_user(user_id)
    return g


def make_user(user_id: int, *roles: Role, active: bool = True) -> User:
    return User(
        id=user_id,
        name=f"User {user_id}",
        email=f"user{user_id}@example.com",
        active=active,
        roles=list(roles),
    )


@pytest.fixture
def user_factory():
    return make_user
