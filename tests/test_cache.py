from ai_proxy.cache import MemoryCache


class TestMemoryCache:
    def test_miss_returns_none(self, fake_clock):
        assert MemoryCache(clock=fake_clock).get("models-openai") is None

    def test_hit_before_expiry(self, fake_clock):
        cache = MemoryCache(clock=fake_clock)
        cache.set("models-openai", ["gpt-4o"], ttl_seconds=60)
        fake_clock.advance(59)
        assert cache.get("models-openai") == ["gpt-4o"]

    def test_entry_expires_at_ttl(self, fake_clock):
        cache = MemoryCache(clock=fake_clock)
        cache.set("models-openai", ["gpt-4o"], ttl_seconds=60)
        fake_clock.advance(60)
        assert cache.get("models-openai") is None
        assert len(cache) == 0

    def test_set_overwrites_and_renews(self, fake_clock):
        cache = MemoryCache(clock=fake_clock)
        cache.set("k", 1, ttl_seconds=10)
        fake_clock.advance(5)
        cache.set("k", 2, ttl_seconds=10)
        fake_clock.advance(8)
        assert cache.get("k") == 2

    def test_cleanup_drops_only_expired(self, fake_clock):
        cache = MemoryCache(clock=fake_clock)
        cache.set("short", 1, ttl_seconds=1)
        cache.set("long", 2, ttl_seconds=100)
        fake_clock.advance(2)
        cache.cleanup()
        assert len(cache) == 1
        assert cache.get("long") == 2
