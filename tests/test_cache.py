from __future__ import annotations

from unittest.mock import MagicMock

import redis

from postwatch.services.cache import Cache


def _client(count: int = 1) -> MagicMock:
    client = MagicMock()
    client.pipeline.return_value.execute.return_value = [count, True]
    return client


def test_degraded_cache_misses_and_allows() -> None:
    cache = Cache(None)

    assert cache.available is False
    assert cache.exists("view:1:user:1") is False
    assert cache.allow("views", "1.2.3.4", limit=1) is True
    assert cache.increment("counter", 60) is None
    assert cache.delete_prefix("posts:") == 0
    assert cache.acquire_lease("lease", "me", 30) is True
    assert cache.renew_lease("lease", "me", 30) is True
    cache.set("anything", 60)
    cache.release_lease("lease", "me")


def test_fixed_window_rate_limit() -> None:
    client = _client(count=101)
    cache = Cache(client)

    assert cache.allow("views", "1.2.3.4", limit=100, window_seconds=60, now=120.0) is False

    pipe = client.pipeline.return_value
    pipe.incr.assert_called_once_with("rl:views:1.2.3.4:2")
    pipe.expire.assert_called_once_with("rl:views:1.2.3.4:2", 60)


def test_rate_limit_allows_within_budget() -> None:
    cache = Cache(_client(count=100))

    assert cache.allow("views", "1.2.3.4", limit=100) is True


def test_zero_limit_blocks_everything() -> None:
    assert Cache(None).allow("views", "ip", limit=0) is False


def test_redis_error_disables_cache(caplog) -> None:
    client = MagicMock()
    client.exists.side_effect = redis.ConnectionError("refused")
    cache = Cache(client)

    assert cache.exists("key") is False
    assert cache.available is False
    assert "continuing without Redis" in caplog.text
    # Later calls never touch the broken client again.
    assert cache.allow("views", "ip", limit=1) is True
    client.pipeline.assert_not_called()


def test_invalidate_post_listings_deletes_prefixed_keys() -> None:
    client = MagicMock()
    client.scan_iter.return_value = iter([b"posts:feed:1", b"posts:feed:2"])
    client.delete.return_value = 2

    Cache(client).invalidate_post_listings()

    client.scan_iter.assert_called_once_with(match="posts:*", count=500)
    client.delete.assert_called_once_with(b"posts:feed:1", b"posts:feed:2")


def test_lease_lifecycle() -> None:
    client = MagicMock()
    client.set.return_value = True
    client.get.return_value = b"worker-a"
    client.expire.return_value = True
    cache = Cache(client)

    assert cache.acquire_lease("lease:sweep", "worker-a", 60) is True
    client.set.assert_called_once_with("lease:sweep", "worker-a", nx=True, ex=60)
    assert cache.renew_lease("lease:sweep", "worker-a", 60) is True
    assert cache.renew_lease("lease:sweep", "worker-b", 60) is False

    cache.release_lease("lease:sweep", "worker-b")
    client.delete.assert_not_called()
    cache.release_lease("lease:sweep", "worker-a")
    client.delete.assert_called_once_with("lease:sweep")


def test_lease_held_elsewhere() -> None:
    client = MagicMock()
    client.set.return_value = None

    assert Cache(client).acquire_lease("lease:sweep", "worker-a", 60) is False
