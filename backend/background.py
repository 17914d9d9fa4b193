"""Background image provisioning.

The cache is partitioned by mode: a mode only ever shows its own cached
image, so switching modes before a fetch finishes can never surface another
mode's picture. Entries are refreshed whenever a fresh fetch compresses
successfully and are never expired by age.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional

from backend.compressor import compress, probe
from backend.images import ImageRef
from backend.network import Connectivity, LoadResult
from utils import config
from utils.errors import ImageDecodeError, PersistenceError
from utils.log import get_logger

_LOGGER = get_logger("backend.background")

CONFIG_KEY = "bg-config"
CACHE_PREFIX = "bg_cache_v1_"

DEFAULT_URL = "https://t.alcy.cc/ycy"
DAILY_URL = "https://bing.biturl.top/?resolution=1920&format=image&index=0&mkt=zh-CN"


class BackgroundMode(str, Enum):
    DEFAULT = "default"
    DAILY_REMOTE = "bing"
    CUSTOM_API = "api"
    LOCAL_UPLOAD = "upload"


@dataclass(frozen=True)
class BackgroundConfig:
    mode: BackgroundMode = BackgroundMode.DEFAULT
    custom_api: str = DEFAULT_URL
    upload_data: str = ""

    def with_mode(self, mode: BackgroundMode) -> "BackgroundConfig":
        # fields of the other modes are kept for quick round-trips
        return replace(self, mode=BackgroundMode(mode))

    def target(self) -> Optional[ImageRef]:
        if self.mode is BackgroundMode.DAILY_REMOTE:
            return ImageRef.url(DAILY_URL)
        if self.mode is BackgroundMode.CUSTOM_API:
            return ImageRef.url((self.custom_api or "").strip() or DEFAULT_URL)
        if self.mode is BackgroundMode.LOCAL_UPLOAD:
            if not self.upload_data:
                return None
            try:
                return ImageRef.from_data_url(self.upload_data)
            except ValueError as e:
                _LOGGER.warning("uploaded background unusable: %s", e)
                return None
        return ImageRef.url(DEFAULT_URL)

    def to_json(self) -> str:
        return json.dumps({
            "type": self.mode.value,
            "customApi": self.custom_api,
            "uploadData": self.upload_data,
        })

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "BackgroundConfig":
        if not raw:
            return cls()
        try:
            d = json.loads(raw)
            return cls(
                mode=BackgroundMode(d.get("type") or BackgroundMode.DEFAULT.value),
                custom_api=d.get("customApi") or DEFAULT_URL,
                upload_data=d.get("uploadData") or "",
            )
        except (ValueError, TypeError, AttributeError) as e:
            _LOGGER.warning("bad background config, using defaults: %s", e)
            return cls()


def load_bg_config(store) -> BackgroundConfig:
    try:
        return BackgroundConfig.from_json(store.get(CONFIG_KEY))
    except PersistenceError as e:
        _LOGGER.warning("background config read failed: %s", e)
        return BackgroundConfig()


def save_bg_config(store, cfg: BackgroundConfig):
    """Raises PersistenceFull when the config (usually an upload) does not fit."""
    store.set(CONFIG_KEY, cfg.to_json())


def cache_key(mode: BackgroundMode) -> str:
    return f"{CACHE_PREFIX}{BackgroundMode(mode).value}"


@dataclass(frozen=True)
class BackgroundUpdate:
    mode: BackgroundMode
    source: Optional[ImageRef]
    data: Optional[bytes] = None

    @property
    def neutral(self) -> bool:
        return self.source is None


class BackgroundProvisioner:
    def __init__(self, store, loader, connectivity: Connectivity,
                 on_update: Callable[[BackgroundUpdate], None] = None,
                 quality: float = None, max_width: int = None):
        self.store = store
        self.loader = loader
        self.connectivity = connectivity
        self.on_update = on_update
        self.quality = quality if quality is not None else config.BG_QUALITY
        self.max_width = max_width if max_width is not None else config.BG_MAX_WIDTH
        self.config: Optional[BackgroundConfig] = None
        self.current: Optional[BackgroundUpdate] = None
        self._generation = 0
        connectivity.subscribe(self._on_connectivity)

    def apply(self, cfg: BackgroundConfig):
        self.config = cfg
        self._run()

    def close(self):
        self._generation += 1
        self.connectivity.unsubscribe(self._on_connectivity)

    def _on_connectivity(self, _online: bool):
        if self.config is not None:
            self._run()

    def _run(self):
        self._generation += 1
        gen = self._generation
        cfg = self.config
        mode = cfg.mode
        target = cfg.target()

        if target is None:
            self._emit(mode, None)
            return
        if target.is_inline:
            self._emit(mode, target, _decoded(target))
            return

        key = cache_key(mode)
        cached = self._read_cache(key)
        if not self.connectivity.online:
            if cached is not None:
                self._emit(mode, cached, _decoded(cached))
            else:
                self._emit(mode, None)
            return

        if cached is not None:
            self._emit(mode, cached, _decoded(cached))
        else:
            self._emit(mode, target)
        self.loader.load(
            target.value,
            lambda done: self._on_load(gen, mode, key, target, *done),
            lambda exc: self._on_error(gen, mode, target, cached is not None, exc),
            transform=self._compress,
        )

    def _compress(self, result: LoadResult):
        # worker thread
        return result, compress(result.data, self.quality, self.max_width)

    def _on_load(self, gen: int, mode: BackgroundMode, key: str, target: ImageRef,
                 result: LoadResult, ref: Optional[ImageRef]):
        if ref is None:
            _LOGGER.info("background %s not compressible, showing it uncached", target.value)
            if gen == self._generation:
                self._emit(mode, target, result.data)
            return
        try:
            self.store.set(key, ref.dumps())
        except PersistenceError as e:
            _LOGGER.info("background for %s not cached: %s", mode.value, e)
        if gen == self._generation:
            self._emit(mode, ref, ref.payload())

    def _on_error(self, gen: int, mode: BackgroundMode, target: ImageRef, had_cache: bool, exc: Exception):
        if gen != self._generation:
            return
        _LOGGER.info("background fetch failed: %s", exc)
        if not had_cache:
            self._emit(mode, target)

    def _read_cache(self, key: str) -> Optional[ImageRef]:
        try:
            raw = self.store.get(key)
        except PersistenceError as e:
            _LOGGER.warning("background cache read failed: %s", e)
            return None
        ref = ImageRef.loads(raw)
        if ref is not None and _decoded(ref) is None:
            ref = None
        if raw and ref is None:
            try:
                self.store.delete(key)
            except PersistenceError as e:
                _LOGGER.warning("background cache delete failed: %s", e)
        return ref

    def _emit(self, mode: BackgroundMode, source: Optional[ImageRef], data: Optional[bytes] = None):
        self.current = BackgroundUpdate(mode, source, data)
        if self.on_update:
            self.on_update(self.current)


def _decoded(ref: ImageRef) -> Optional[bytes]:
    if not ref.is_inline:
        return None
    try:
        data = ref.payload()
        probe(data)
    except (ValueError, ImageDecodeError):
        return None
    return data
