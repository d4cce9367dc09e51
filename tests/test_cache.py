from unittest.mock import patch

from playlight.core.cache import (
    HEAVY,
    LOGIN,
    PROFILES,
    RateLimiter,
    TTLCache,
)
from playlight.routes import platform as platform_routes

from conftest import FakeClock


def test_ttl_cache_serves_until_expiry():
    clock = FakeClock()
    cache = TTLCache(10, clock)
    calls = []

    def compute():
        calls.append(1)
        return len(calls)

    assert cache.get_or_compute(compute) == 1
    clock.advance(9.9)
    assert cache.get_or_compute(compute) == 1
    clock.advance(0.1)
    assert cache.get_or_compute(compute) == 2
    assert (cache.hits, cache.misses) == (1, 2)


def test_ttl_cache_invalidate():
    cache = TTLCache(10, FakeClock())
    cache.get_or_compute(lambda: "a")
    cache.invalidate()
    assert cache.get_or_compute(lambda: "b") == "b"


def test_rate_limiter_fixed_window():
    clock = FakeClock()
    limiter = RateLimiter(clock)

    results = [limiter.hit(LOGIN, "1.2.3.4")[0] for _ in range(6)]
    assert results == [True] * 5 + [False]
    assert limiter.hit(LOGIN, "5.6.7.8")[0]

    allowed, retry_after = limiter.hit(LOGIN, "1.2.3.4")
    assert not allowed
    assert retry_after == 60

    clock.advance(60)
    assert limiter.hit(LOGIN, "1.2.3.4")[0]


def test_rate_limiter_prunes_expired_windows():
    clock = FakeClock()
    limiter = RateLimiter(clock)
    limiter.hit(HEAVY, "a")
    limiter.hit(LOGIN, "a")
    clock.advance(1)
    assert limiter.prune() == 1
    clock.advance(60)
    assert limiter.prune() == 1


def test_profiles():
    expected = {
        "login": (5, 60),
        "register": (5, 1800),
        "standard": (10, 1),
        "heavy": (1, 1),
        "open": (3, 10),
        "super_heavy": (2, 1800),
    }
    assert {name: (p.limit, p.window_seconds) for name, p in PROFILES.items()} == expected


def test_categories_are_cached_per_ttl(client, clock, make_user, make_game):
    owner = make_user()
    make_game(owner, category="Puzzle")
    make_game(owner, category="Action")
    make_game(owner, category="Puzzle")

    with patch.object(
        platform_routes, "list_categories", wraps=platform_routes.list_categories
    ) as spy:
        first = client.get("/platform/categories")
        make_game(owner, category="Racing")
        second = client.get("/platform/categories")
        assert spy.call_count == 1
        clock.advance(10)
        third = client.get("/platform/categories")
        assert spy.call_count == 2

    assert first.json() == ["Action", "Puzzle"]
    assert second.json() == ["Action", "Puzzle"]
    assert third.json() == ["Action", "Puzzle", "Racing"]


def test_total_statistics_cached(client, clock, make_user, make_game):
    owner = make_user()
    make_game(owner, likes=2)

    assert client.get("/platform/total-statistics").json()["games"] == 1
    make_game(owner)
    assert client.get("/platform/total-statistics").json()["games"] == 1
    clock.advance(300)
    assert client.get("/platform/total-statistics").json()["games"] == 2
