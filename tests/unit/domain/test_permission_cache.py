"""Unit tests for PermissionCache service."""

from gatehouse.domain.services import PermissionCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestPermissionCache:
    """Test suite for PermissionCache."""

    def test_cache_initialization(self):
        cache = PermissionCache(ttl_seconds=300)
        assert cache.ttl_seconds == 300
        assert cache.size() == 0

    def test_cache_set_and_get(self):
        cache = PermissionCache(ttl_seconds=300)
        cache.set(1, ["view:dashboard"])

        assert cache.get(1) == ["view:dashboard"]
        assert cache.get(1, "roles") is None

    def test_cache_miss(self):
        assert PermissionCache().get(42) is None

    def test_cache_expiration(self):
        clock = FakeClock()
        cache = PermissionCache(ttl_seconds=10, clock=clock)
        cache.set(1, ["view:dashboard"])

        clock.now = 10.0
        assert cache.get(1) is not None

        clock.now = 10.5
        assert cache.get(1) is None
        assert cache.size() == 0

    def test_invalidate_user(self):
        cache = PermissionCache()
        cache.set(1, ["a"])
        cache.set(1, ["admin"], "roles")
        cache.set(11, ["b"])

        cache.invalidate_user(1)

        assert cache.get(1) is None
        assert cache.get(1, "roles") is None
        assert cache.get(11) == ["b"]

    def test_universe_survives_user_invalidation(self):
        cache = PermissionCache()
        cache.set_universe(["everything"])
        cache.set(1, ["a"])

        cache.invalidate_user(1)
        assert cache.get_universe() == ["everything"]

        cache.invalidate_all()
        assert cache.get_universe() is None

    def test_cleanup_expired(self):
        clock = FakeClock()
        cache = PermissionCache(ttl_seconds=5, clock=clock)
        cache.set(1, ["a"])
        clock.now = 3.0
        cache.set(2, ["b"])

        clock.now = 6.0
        assert cache.cleanup_expired() == 1
        assert cache.size() == 1
        assert cache.get(2) == ["b"]
