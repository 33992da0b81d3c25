from backend.app.core.cache import ReadCache, cache_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_remember_reuses_value_until_ttl_expires():
    clock = FakeClock()
    cache = ReadCache(clock=clock)
    calls = []

    def compute():
        calls.append(1)
        return len(calls)

    assert cache.remember("blog_posts:list", 60, compute) == 1
    assert cache.remember("blog_posts:list", 60, compute) == 1
    clock.now += 61
    assert cache.remember("blog_posts:list", 60, compute) == 2


def test_forget_family_only_drops_that_family():
    cache = ReadCache()
    cache.remember("blog_posts:list", 60, lambda: "posts")
    cache.remember("blog_posts:featured", 60, lambda: "featured")
    cache.remember("dues:statistics", 60, lambda: "dues")

    assert cache.forget_family("blog_posts") == 2
    assert "blog_posts:list" not in cache
    assert "dues:statistics" in cache


def test_cache_key_digest_is_order_independent():
    assert cache_key("dues", "statistics") == "dues:statistics"
    first = cache_key("blog_posts", "list", {"page": 1, "search": "water"})
    second = cache_key("blog_posts", "list", {"search": "water", "page": 1})
    assert first == second
    assert first.startswith("blog_posts:list:")
    assert first != cache_key("blog_posts", "list", {"page": 2, "search": "water"})


def test_expired_entries_are_dropped_on_the_next_write():
    clock = FakeClock()
    cache = ReadCache(clock=clock)
    for page in range(1000):
        cache.remember(cache_key("blog_posts", "list", {"page": page}), 60, lambda: page)
    assert len(cache) == 1000

    clock.now += 61
    cache.remember("blog_posts:featured", 60, lambda: "featured")

    assert len(cache) == 1
    assert "blog_posts:featured" in cache


def test_cache_never_holds_more_than_max_entries():
    clock = FakeClock()
    cache = ReadCache(clock=clock, max_entries=3)
    cache.remember("events:a", 10, lambda: "a")
    cache.remember("events:b", 300, lambda: "b")
    cache.remember("events:c", 300, lambda: "c")
    cache.remember("events:d", 300, lambda: "d")

    assert len(cache) == 3
    assert "events:a" not in cache
    assert "events:d" in cache
