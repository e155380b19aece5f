import pytest
import redis

from sdc.cache import CacheManager

CACHE_KEY_PROXY_TEST = "PROXIESTEST"


class FakeRedis:
    def __init__(self):
        self.sets = {}
        self.closed = False

    def ping(self):
        return "PONG"

    def sadd(self, key, *values):
        members = self.sets.setdefault(key, set())
        before = len(members)
        members.update(values)
        return len(members) - before

    def srandmember(self, key):
        members = self.sets.get(key)
        return next(iter(members)) if members else None

    def spop(self, key):
        members = self.sets.get(key)
        return members.pop() if members else None

    def smembers(self, key):
        return set(self.sets.get(key, set()))

    def srem(self, key, *values):
        members = self.sets.get(key, set())
        removed = len(members & set(values))
        members.difference_update(values)
        return removed

    def scard(self, key):
        return len(self.sets.get(key, ()))

    def delete(self, *keys):
        return sum(1 for key in keys if self.sets.pop(key, None) is not None)

    def close(self):
        self.closed = True


class UnreachableRedis(FakeRedis):
    def ping(self):
        raise redis.ConnectionError("refused")


class BrokenWritesRedis(FakeRedis):
    def sadd(self, key, *values):
        raise redis.RedisError("read only")

    def close(self):
        raise redis.RedisError("already closed")


def manager_with(client):
    return CacheManager(client_factory=lambda host, port: client)


def test_connect_and_disconnect():
    m = manager_with(FakeRedis())
    m.connect()
    assert m.client is not None
    m.disconnect()
    assert m.client is None


def test_connect_uses_environment_address(monkeypatch):
    monkeypatch.setenv("REDISHOST", "cachehost")
    monkeypatch.setenv("REDISPORT", "6380")
    seen = []
    client = FakeRedis()

    def factory(host, port):
        seen.append((host, port))
        return client

    m = CacheManager(client_factory=factory)
    m.connect()
    assert seen == [("cachehost", "6380")]
    assert m.client is client


def test_connect_failure_raises_connection_error(monkeypatch):
    monkeypatch.setenv("REDISHOST", "cachehost")
    monkeypatch.setenv("REDISPORT", "6380")
    with pytest.raises(ConnectionError, match="Failed to connect to cachehost:6380"):
        manager_with(UnreachableRedis()).connect()


def test_proxy_cache_add_get_delete():
    m = manager_with(FakeRedis())
    m.connect()
    m.add_to_set(CACHE_KEY_PROXY_TEST, "1.1.1.1:8080")
    assert m.get_from_set(CACHE_KEY_PROXY_TEST) == "1.1.1.1:8080"
    m.delete_from_set(CACHE_KEY_PROXY_TEST, "1.1.1.1:8080")
    assert m.get_from_set(CACHE_KEY_PROXY_TEST) is None


def test_pop_removes_member_and_empty_pop_returns_none():
    with manager_with(FakeRedis()) as m:
        m.add_to_set("K", "a")
        assert m.pop_from_set("K") == "a"
        assert m.get_length("K") == 0
        assert m.pop_from_set("K") is None


def test_get_all_and_length():
    with manager_with(FakeRedis()) as m:
        for value in ("a", "b", "c", "a"):
            m.add_to_set("K", value)
        assert m.get_length("K") == 3
        assert sorted(m.get_all_from_set("K")) == ["a", "b", "c"]


def test_delete_set_empties_key():
    with manager_with(FakeRedis()) as m:
        m.add_to_set("K", "a")
        m.delete_set("K")
        assert m.get_all_from_set("K") == []


def test_move_set_drains_source():
    with manager_with(FakeRedis()) as m:
        for value in ("a", "b", "c"):
            m.add_to_set("SRC", value)
        m.move_set("SRC", "DST")
        assert m.get_length("SRC") == 0
        assert sorted(m.get_all_from_set("DST")) == ["a", "b", "c"]


def test_copy_set_keeps_source():
    with manager_with(FakeRedis()) as m:
        for value in ("a", "b"):
            m.add_to_set("SRC", value)
        m.add_to_set("DST", "z")
        m.copy_set("SRC", "DST")
        assert sorted(m.get_all_from_set("SRC")) == ["a", "b"]
        assert sorted(m.get_all_from_set("DST")) == ["a", "b", "z"]


def test_context_manager_closes_client():
    client = FakeRedis()
    with manager_with(client) as m:
        m.add_to_set("K", "a")
    assert client.closed is True
    assert m.client is None


def test_operations_before_connect_raise():
    with pytest.raises(RuntimeError, match="Not connected"):
        CacheManager().add_to_set("K", "a")


def test_add_failure_raises_with_context():
    m = manager_with(BrokenWritesRedis())
    m.connect()
    with pytest.raises(RuntimeError, match="Failed to add x to cache key K"):
        m.add_to_set("K", "x")


def test_disconnect_tolerates_close_failure():
    m = manager_with(BrokenWritesRedis())
    m.connect()
    m.disconnect()
    assert m.client is None