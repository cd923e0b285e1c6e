"""Tests for page9.cache: storage and version lifecycle."""

from page9.cache.lifecycle import CacheLifecycle, cache_name
from page9.cache.storage import CacheStorage
from page9.http.request import Request
from page9.http.response import Response


class TestCache:
    def test_put_and_match(self) -> None:
        cache = CacheStorage().open("c")
        request = Request.build("GET", "/a")
        assert cache.match(request) is None
        assert cache.put(request, Response("A"))
        cached = cache.match(Request.build("GET", "/a"))
        assert cached is not None
        assert cached.text == "A"

    def test_key_includes_query(self) -> None:
        cache = CacheStorage().open("c")
        cache.put(Request.build("GET", "/a?v=1"), Response("one"))
        assert cache.match(Request.build("GET", "/a?v=2")) is None
        assert cache.keys() == [("GET", "/a?v=1")]

    def test_only_get_is_cached(self) -> None:
        cache = CacheStorage().open("c")
        assert not cache.put(Request.build("POST", "/a"), Response("x"))
        assert len(cache) == 0
        cache.put(Request.build("GET", "/a"), Response("x"))
        assert cache.match(Request.build("POST", "/a")) is None

    def test_last_writer_wins(self) -> None:
        cache = CacheStorage().open("c")
        request = Request.build("GET", "/a")
        cache.put(request, Response("old"))
        cache.put(request, Response("new"))
        cached = cache.match(request)
        assert cached is not None
        assert cached.text == "new"
        assert len(cache) == 1

    def test_delete(self) -> None:
        cache = CacheStorage().open("c")
        request = Request.build("GET", "/a")
        cache.put(request, Response("x"))
        assert cache.delete(request)
        assert not cache.delete(request)


class TestCacheStorage:
    def test_open_is_idempotent(self) -> None:
        storage = CacheStorage()
        assert storage.open("a") is storage.open("a")
        assert storage.keys() == ["a"]

    def test_delete(self) -> None:
        storage = CacheStorage()
        storage.open("a")
        assert storage.has("a")
        assert storage.delete("a")
        assert not storage.has("a")
        assert not storage.delete("a")


class TestLifecycle:
    def test_cache_name(self) -> None:
        assert cache_name("page9-kernel", "1.2.3") == "page9-kernel-v1.2.3"

    def test_purge_removes_other_versions_only(self) -> None:
        storage = CacheStorage()
        for name in ("page9-kernel-v0.0.1", "page9-kernel-v0.0.2", "page9-kernel-v1.0.0", "unrelated", "page9-kernelx"):
            storage.open(name)

        lifecycle = CacheLifecycle(storage, "page9-kernel", "1.0.0")
        deleted = lifecycle.purge_stale()

        assert sorted(deleted) == ["page9-kernel-v0.0.1", "page9-kernel-v0.0.2"]
        assert sorted(storage.keys()) == ["page9-kernel-v1.0.0", "page9-kernelx", "unrelated"]

    def test_purge_with_nothing_stale(self) -> None:
        storage = CacheStorage()
        lifecycle = CacheLifecycle(storage, "p", "1")
        lifecycle.open()
        assert lifecycle.purge_stale() == []
        assert storage.keys() == ["p-v1"]

    def test_clear_current_only(self) -> None:
        storage = CacheStorage()
        storage.open("p-v0").put(Request.build("GET", "/old"), Response("old"))
        lifecycle = CacheLifecycle(storage, "p", "1")
        lifecycle.open().put(Request.build("GET", "/a"), Response("a"))

        assert lifecycle.clear()
        assert storage.keys() == ["p-v0"]
        assert len(lifecycle.open()) == 0
