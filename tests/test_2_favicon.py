import pytest

from backend.favicon import (
    IconBoard, IconResolver, ResolutionState, cache_key, hostname, tier_urls,
)
from backend.images import ImageRef, RefKind
from backend.shortcuts import Shortcut
from tests._utils import noisy_png, png_bytes
from utils.db import Store
from utils.errors import MalformedSource

URL = "https://example.com"


def make(store, loader, connectivity, **kw):
    updates = []
    r = IconResolver(store, loader, connectivity, updates.append, **kw)
    return r, updates


def test_tier_urls_follow_fixed_order():
    assert tier_urls("https://example.com/a?b=1") == [
        "https://api.uomg.com/api/get.favicon?url=https%3A%2F%2Fexample.com%2Fa%3Fb%3D1",
        "https://api.iowen.cn/favicon/example.com.png",
        "https://example.com/favicon.ico",
    ]
    assert tier_urls("http://user:pw@Host.example:8080/x")[2] == "http://host.example:8080/favicon.ico"


@pytest.mark.parametrize("bad", ["", "example.com", "mailto:someone", "not a url"])
def test_hostname_rejects_malformed(bad):
    with pytest.raises(MalformedSource):
        hostname(bad)


def test_malformed_url_stays_idle(store, loader, connectivity):
    r, updates = make(store, loader, connectivity)
    r.resolve("example.com")
    assert r.state is ResolutionState.IDLE
    assert updates[-1].source is None
    assert loader.calls == []


def test_cache_hit_is_shown_before_any_network_call(store, loader, connectivity):
    png = png_bytes()
    cached = ImageRef.inline(png, "image/png")
    store.set(cache_key("example.com"), cached.dumps())

    r, updates = make(store, loader, connectivity)
    r.resolve(URL)

    assert updates[0].state is ResolutionState.USING_CACHE
    assert updates[0].source == cached
    assert updates[-1].data == png
    assert loader.calls == []


def test_all_tiers_fail_in_order_then_unavailable(store, loader, connectivity):
    r, updates = make(store, loader, connectivity)
    r.resolve(URL)
    for i in range(3):
        assert len(loader.calls) == i + 1
        loader.fail(i)

    assert loader.urls == tier_urls(URL)
    assert r.state is ResolutionState.FALLBACK
    assert updates[-1].unavailable
    assert updates[-1].source is None
    assert store.get(cache_key("example.com")) is None


@pytest.mark.parametrize("url", [URL, "example.com", "", "::::"])
def test_custom_icon_short_circuits_cache_and_tiers(store, loader, connectivity, url):
    store.set(cache_key("example.com"), ImageRef.url("https://cdn.example/x.png").dumps())
    custom = ImageRef.inline(png_bytes(color=(0, 0, 255))).value

    r, updates = make(store, loader, connectivity)
    r.resolve(url, custom)

    assert {u.state for u in updates} == {ResolutionState.USING_CUSTOM}
    assert updates[-1].data is not None
    assert loader.calls == []
    assert store.get(cache_key("example.com")) is not None


def test_broken_custom_icon_goes_straight_to_unavailable(store, loader, connectivity):
    r, updates = make(store, loader, connectivity)
    r.resolve(URL, ImageRef.inline(b"not an image").value)
    assert r.state is ResolutionState.FALLBACK
    assert {u.state for u in updates} <= {ResolutionState.USING_CUSTOM, ResolutionState.FALLBACK}
    assert loader.calls == []

    r.resolve(URL, "garbage")
    assert r.state is ResolutionState.FALLBACK
    assert loader.calls == []


def test_failed_cache_entry_is_evicted_and_tier_one_restarts(store, loader, connectivity):
    key = cache_key("example.com")
    store.set(key, ImageRef.url("https://cdn.example/old.png").dumps())

    r, updates = make(store, loader, connectivity)
    r.resolve(URL)
    assert updates[0].state is ResolutionState.USING_CACHE
    assert loader.urls == ["https://cdn.example/old.png"]

    loader.fail(0)
    assert store.get(key) is None
    assert loader.urls[1] == tier_urls(URL)[0]
    assert r.state is ResolutionState.TRYING_TIER
    assert r.tier_index == 0


def test_cached_url_returning_non_image_is_evicted_and_tier_one_restarts(store, loader, connectivity):
    key = cache_key("example.com")
    store.set(key, ImageRef.url("https://cdn.example/old.png").dumps())

    r, _ = make(store, loader, connectivity)
    r.resolve(URL)
    loader.succeed(0, data=b"<html>gone</html>", content_type="text/html")

    assert store.get(key) is None
    assert loader.urls[1] == tier_urls(URL)[0]
    assert r.state is ResolutionState.TRYING_TIER
    assert r.data is None


def test_undecodable_inline_cache_is_evicted(store, loader, connectivity):
    key = cache_key("example.com")
    store.set(key, ImageRef.inline(b"\x00\x01junk").dumps())

    r, _ = make(store, loader, connectivity)
    r.resolve(URL)
    assert store.get(key) is None
    assert loader.urls == [tier_urls(URL)[0]]


def test_failed_cache_while_offline_is_unavailable(store, loader, connectivity):
    key = cache_key("example.com")
    store.set(key, ImageRef.url("https://cdn.example/old.png").dumps())
    r, _ = make(store, loader, connectivity)
    r.resolve(URL)
    connectivity.set_online(False)
    loader.fail(0)
    assert store.get(key) is None
    assert r.state is ResolutionState.FALLBACK
    assert len(loader.calls) == 1


def test_offline_cache_miss_skips_remote_tiers(store, loader, connectivity):
    connectivity.set_online(False)
    r, updates = make(store, loader, connectivity)
    r.resolve(URL)
    assert r.state is ResolutionState.FALLBACK
    assert updates[-1].unavailable
    assert loader.calls == []


def test_third_tier_success_is_cached_inline(store, loader, connectivity):
    png = png_bytes()
    r, updates = make(store, loader, connectivity)
    r.resolve(URL)
    loader.fail(0)
    loader.fail(1)
    assert loader.urls[2] == "https://example.com/favicon.ico"
    loader.succeed(2, data=png)

    assert updates[-1].data == png
    assert updates[-1].tier_index == 2
    entry = ImageRef.loads(store.get(cache_key("example.com")))
    assert entry.kind is RefKind.INLINE
    assert entry.payload() == png


def test_large_icon_is_cached_as_url(store, loader, connectivity):
    r, _ = make(store, loader, connectivity)
    r.resolve(URL)
    loader.succeed(0, data=noisy_png())
    entry = ImageRef.loads(store.get(cache_key("example.com")))
    assert entry == ImageRef.url(tier_urls(URL)[0])


def test_inline_limit_is_configurable(store, loader, connectivity):
    r, _ = make(store, loader, connectivity, inline_limit=10)
    r.resolve(URL)
    loader.succeed(0)
    assert ImageRef.loads(store.get(cache_key("example.com"))).kind is RefKind.URL


def test_unreadable_bytes_are_cached_as_url(store, loader, connectivity):
    r, _ = make(store, loader, connectivity)
    r.resolve(URL)
    loader.succeed(0, unreadable=True)
    assert r.state is ResolutionState.TRYING_TIER
    entry = ImageRef.loads(store.get(cache_key("example.com")))
    assert entry == ImageRef.url(tier_urls(URL)[0])


def test_full_store_does_not_affect_display(tmp_path, loader, connectivity):
    tiny = Store(str(tmp_path / "tiny.db"), capacity=16)
    png = png_bytes()
    r, updates = make(tiny, loader, connectivity)
    r.resolve(URL)
    loader.succeed(0, data=png)
    assert updates[-1].data == png
    assert tiny.get(cache_key("example.com")) is None


def test_non_image_body_counts_as_tier_failure(store, loader, connectivity):
    r, _ = make(store, loader, connectivity)
    r.resolve(URL)
    loader.succeed(0, data=b"<html>not found</html>", content_type="text/html")
    assert loader.urls[1] == tier_urls(URL)[1]
    assert r.tier_index == 1


def test_late_callbacks_after_reinit_are_ignored(store, loader, connectivity):
    r, updates = make(store, loader, connectivity)
    r.resolve(URL)
    r.resolve("https://other.org")
    seen = len(updates)

    loader.fail(0)
    loader.succeed(0)
    assert len(loader.calls) == 2
    assert len(updates) == seen
    assert store.get(cache_key("example.com")) is None
    assert r.tier_index == 0


def test_update_with_same_inputs_does_not_restart(store, loader, connectivity):
    r, _ = make(store, loader, connectivity)
    r.update(URL)
    r.update(URL)
    assert len(loader.calls) == 1
    r.update(URL, ImageRef.inline(png_bytes()).value)
    assert r.state is ResolutionState.USING_CUSTOM


def test_board_keeps_one_resolver_per_shortcut(store, loader, connectivity):
    seen = []
    board = IconBoard(store, loader, connectivity, lambda sid, u: seen.append((sid, u.state)))
    a = Shortcut(1, "A", "https://a.com")
    b = Shortcut(2, "B", "https://b.com")

    board.sync([a, b])
    assert len(board) == 2
    assert len(loader.calls) == 2
    assert {sid for sid, _ in seen} == {1, 2}

    board.sync([a, b])
    assert len(loader.calls) == 2

    board.sync([a])
    assert len(board) == 1
    count = len(seen)
    loader.fail(1)
    assert len(seen) == count
    assert len(loader.calls) == 2

    board.sync([Shortcut(1, "A", "https://a2.com")])
    assert loader.urls[-1] == tier_urls("https://a2.com")[0]
