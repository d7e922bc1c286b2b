"""
Tests for the metadata cache.
"""
import threading

from spquery.cache import VIEW, LIST, MetadataCache, cache_key, get_cache


class TestMetadataCache:
    def test_get_put(self):
        cache = MetadataCache()
        key = cache_key(VIEW, "https://sp.example.com/", "Tasks", "All")
        assert cache.get(key) is None
        assert cache.get(key, "default") == "default"
        cache.put(key, "view")
        assert cache.get(key) == "view"
        assert key in cache
        assert len(cache) == 1

    def test_key_normalizes_site(self):
        assert cache_key(LIST, "https://SP.example.com/sites/a/", "L") == cache_key(
            LIST, "https://sp.example.com/sites/a", "L"
        )

    def test_invalidate(self):
        cache = MetadataCache()
        cache.put(cache_key(VIEW, "https://a", "L", "v"), 1)
        cache.put(cache_key(LIST, "https://a", "L"), 2)
        cache.put(cache_key(LIST, "https://b", "L"), 3)
        assert cache.invalidate(kind=LIST, site_url="https://a/") == 1
        assert len(cache) == 2
        assert cache.invalidate(kind=LIST) == 1
        assert cache.invalidate() == 1
        assert len(cache) == 0

    def test_clear(self):
        cache = MetadataCache()
        cache.put(cache_key(VIEW, "https://a", "L", "v"), 1)
        cache.clear()
        assert len(cache) == 0

    def test_concurrent_writers(self):
        cache = MetadataCache()

        def writer(n):
            for i in range(200):
                cache.put(cache_key(VIEW, "https://a", "L", i % 10), n)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(cache) == 10

    def test_process_wide_cache(self):
        assert get_cache() is get_cache()
