"""Per-shortcut favicon resolution.

Each shortcut gets its own :class:`IconResolver`. Resolution runs as a small
state machine fed by loader callbacks:

    custom icon -> shown as is, never replaced by remote tiers
    cache hit   -> shown; if it fails to render it is evicted and tier 1 restarts
    cache miss  -> tier 1, tier 2, tier 3 in order, each only after the previous failed

The first remote tier that loads is written back to the store, inline when
small enough and as its URL otherwise. Every asynchronous completion carries
the ``(generation, tier_index)`` it was issued for and is dropped when that
no longer matches, so re-resolving abandons in-flight loads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional
from urllib.parse import quote, urlparse

from backend.compressor import encode_inline, probe
from backend.images import ImageRef
from backend.network import Connectivity, LoadResult
from utils import config
from utils.errors import (
    CacheStale, CrossOriginBlocked, ImageDecodeError, MalformedSource, PersistenceError,
)
from utils.log import get_logger

_LOGGER = get_logger("backend.favicon")

CACHE_PREFIX = "fav_cache_v1_"


class ResolutionState(str, Enum):
    IDLE = "idle"
    USING_CUSTOM = "using_custom"
    USING_CACHE = "using_cache"
    TRYING_TIER = "trying_tier"
    FALLBACK = "fallback"


def hostname(url: str) -> str:
    try:
        p = urlparse((url or "").strip())
        host = p.hostname
    except ValueError as e:
        raise MalformedSource(url) from e
    if not p.scheme or not host:
        raise MalformedSource(url)
    return host


def cache_key(host: str) -> str:
    return f"{CACHE_PREFIX}{host}"


def origin(url: str) -> str:
    host = hostname(url)
    p = urlparse(url.strip())
    try:
        port = p.port
    except ValueError as e:
        raise MalformedSource(url) from e
    if ":" in host:
        host = f"[{host}]"
    return f"{p.scheme}://{host}" + (f":{port}" if port else "")


def tier_urls(url: str) -> List[str]:
    url = url.strip()
    return [
        f"https://api.uomg.com/api/get.favicon?url={quote(url, safe='')}",
        f"https://api.iowen.cn/favicon/{hostname(url)}.png",
        f"{origin(url)}/favicon.ico",
    ]


@dataclass(frozen=True)
class IconUpdate:
    state: ResolutionState
    tier_index: int
    source: Optional[ImageRef]
    data: Optional[bytes] = None

    @property
    def unavailable(self) -> bool:
        return self.state is ResolutionState.FALLBACK


class IconResolver:
    def __init__(self, store, loader, connectivity: Connectivity,
                 on_update: Callable[[IconUpdate], None] = None,
                 inline_limit: int = None):
        self.store = store
        self.loader = loader
        self.connectivity = connectivity
        self.on_update = on_update
        self.inline_limit = inline_limit if inline_limit is not None else config.ICON_INLINE_LIMIT

        self.source_url: Optional[str] = None
        self.custom_icon: Optional[str] = None
        self.state = ResolutionState.IDLE
        self.tier_index = -1
        self.source: Optional[ImageRef] = None
        self.data: Optional[bytes] = None
        self._host = ""
        self._tiers: List[str] = []
        self._generation = 0

    # -- inputs ---------------------------------------------------------

    def update(self, source_url: str, custom_icon: Optional[str] = None):
        """Re-resolve only when the inputs changed."""
        if self._generation and (source_url, custom_icon) == (self.source_url, self.custom_icon):
            return
        self.resolve(source_url, custom_icon)

    def resolve(self, source_url: str, custom_icon: Optional[str] = None):
        self._generation += 1
        self.source_url = source_url
        self.custom_icon = custom_icon
        self.tier_index = -1
        self.source = None
        self.data = None
        self._host = ""
        self._tiers = []

        if custom_icon:
            try:
                ref = ImageRef.from_data_url(custom_icon)
            except ValueError as e:
                _LOGGER.debug("custom icon unusable for %s: %s", source_url, e)
                self.state = ResolutionState.USING_CUSTOM
                self._fail()
                return
            self._show(ResolutionState.USING_CUSTOM, ref)
            return

        try:
            self._host = hostname(source_url)
            self._tiers = tier_urls(source_url)
        except MalformedSource as e:
            _LOGGER.debug("%s", e)
            self.state = ResolutionState.IDLE
            self._emit()
            return

        ref = self._read_cache()
        if ref is not None:
            self._show(ResolutionState.USING_CACHE, ref)
            return
        self._start_tiers()

    def cancel(self):
        """Abandon in-flight loads; their callbacks become no-ops."""
        self._generation += 1

    # -- transitions ----------------------------------------------------

    def _start_tiers(self):
        if not self.connectivity.online:
            _LOGGER.debug("offline, no remote lookup for %s", self._host)
            self._fail()
            return
        self._try_tier(0)

    def _try_tier(self, index: int):
        self.tier_index = index
        self._show(ResolutionState.TRYING_TIER, ImageRef.url(self._tiers[index]))

    def _show(self, state: ResolutionState, ref: ImageRef):
        self.state = state
        self.source = ref
        self.data = None
        self._emit()
        token = (self._generation, self.tier_index)
        if ref.is_inline:
            try:
                data = ref.payload()
                probe(data)
            except (ValueError, ImageDecodeError) as e:
                self._on_error(token, e)
                return
            self._on_load(token, LoadResult(ref.value, data, ref.mime))
            return
        self.loader.load(
            ref.value,
            lambda res: self._on_load(token, res),
            lambda exc: self._on_error(token, exc),
        )

    def _current(self, token) -> bool:
        return token == (self._generation, self.tier_index)

    def _on_load(self, token, result: LoadResult):
        if not self._current(token):
            return
        if result.data is not None:
            try:
                probe(result.data)
            except ImageDecodeError as e:
                self._on_error(token, e)
                return
        self.data = result.data
        self._emit()
        if self.state is ResolutionState.TRYING_TIER:
            self._write_back(result)

    def _on_error(self, token, exc: Exception):
        if not self._current(token):
            return
        if self.state is ResolutionState.USING_CUSTOM:
            _LOGGER.debug("custom icon failed for %s: %s", self.source_url, exc)
            self._fail()
        elif self.state is ResolutionState.USING_CACHE:
            stale = CacheStale(cache_key(self._host))
            _LOGGER.info("%s (%s)", stale, exc)
            self._evict()
            self._start_tiers()
        elif self.state is ResolutionState.TRYING_TIER:
            _LOGGER.debug("tier %d failed for %s: %s", self.tier_index + 1, self._host, exc)
            if self.tier_index + 1 < len(self._tiers):
                self._try_tier(self.tier_index + 1)
            else:
                self._fail()

    def _fail(self):
        self.state = ResolutionState.FALLBACK
        self.source = None
        self.data = None
        self._emit()

    def _emit(self):
        if self.on_update:
            self.on_update(self.snapshot())

    def snapshot(self) -> IconUpdate:
        return IconUpdate(self.state, self.tier_index, self.source, self.data)

    # -- cache ----------------------------------------------------------

    def _read_cache(self) -> Optional[ImageRef]:
        key = cache_key(self._host)
        try:
            raw = self.store.get(key)
        except PersistenceError as e:
            _LOGGER.warning("icon cache read failed: %s", e)
            return None
        ref = ImageRef.loads(raw)
        if raw and ref is None:
            self._evict()
        return ref

    def _evict(self):
        try:
            self.store.delete(cache_key(self._host))
        except PersistenceError as e:
            _LOGGER.warning("icon cache delete failed: %s", e)

    def _write_back(self, result: LoadResult):
        ref = ImageRef.url(result.url)
        try:
            inline = encode_inline(result)
            if len(inline.value) < self.inline_limit:
                ref = inline
        except CrossOriginBlocked as e:
            _LOGGER.debug("%s", e)
        try:
            self.store.set(cache_key(self._host), ref.dumps())
        except PersistenceError as e:
            _LOGGER.info("icon for %s not cached: %s", self._host, e)


class IconBoard:
    """One resolver per shortcut id."""

    def __init__(self, store, loader, connectivity: Connectivity,
                 on_update: Callable[[object, IconUpdate], None] = None,
                 inline_limit: int = None):
        self.store = store
        self.loader = loader
        self.connectivity = connectivity
        self.on_update = on_update
        self.inline_limit = inline_limit
        self._resolvers: Dict[object, IconResolver] = {}

    def _make(self, sid) -> IconResolver:
        def _notify(update, sid=sid):
            if self.on_update:
                self.on_update(sid, update)
        return IconResolver(self.store, self.loader, self.connectivity, _notify, self.inline_limit)

    def sync(self, shortcuts: Iterable):
        seen = set()
        for s in shortcuts:
            seen.add(s.id)
            r = self._resolvers.get(s.id)
            if r is None:
                r = self._resolvers[s.id] = self._make(s.id)
            r.update(s.url, s.custom_icon)
        for sid in [k for k in self._resolvers if k not in seen]:
            self._resolvers.pop(sid).cancel()

    def get(self, sid) -> Optional[IconResolver]:
        return self._resolvers.get(sid)

    def __len__(self):
        return len(self._resolvers)
