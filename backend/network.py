from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional

import requests

from utils import config
from utils.errors import RemoteUnavailable
from utils.log import get_logger

_LOGGER = get_logger("backend.network")

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/121.0 Safari/537.36"
)


@dataclass(frozen=True)
class LoadResult:
    # data is None when the resource rendered but its bytes cannot be read back
    url: str
    data: Optional[bytes]
    content_type: str = ""


def fetch(url: str, timeout: float = None) -> LoadResult:
    try:
        r = requests.get(url, headers={"User-Agent": USER_AGENT},
                         timeout=timeout or config.REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise RemoteUnavailable(f"{url}: {e}") from e
    if r.status_code != 200:
        raise RemoteUnavailable(f"{url}: HTTP {r.status_code}")
    ct = r.headers.get("content-type") or r.headers.get("Content-Type") or ""
    return LoadResult(url, r.content, ct.split(";")[0].strip())


class HttpLoader:
    """Runs fetches on a worker pool and posts completions through ``post``.

    ``post`` receives a zero-argument callable; the GUI passes one that
    queues it onto the Qt event loop.
    """

    def __init__(self, post: Callable = None, timeout: float = None, max_workers: int = None):
        self._post = post or (lambda fn: fn())
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self._pool = ThreadPoolExecutor(max_workers=max_workers or config.LOADER_WORKERS,
                                        thread_name_prefix="loader")

    def load(self, url: str, on_load: Callable, on_error: Callable, transform: Callable = None):
        """Fetch ``url`` on a worker.

        ``transform`` runs on the same worker with the LoadResult, and its
        return value is what ``on_load`` receives.
        """
        _LOGGER.debug("load %s", url)
        fut = self._pool.submit(self._work, url, transform)

        def _done(f):
            exc = f.exception()
            if exc is not None:
                self._post(lambda: on_error(exc))
            else:
                res = f.result()
                self._post(lambda: on_load(res))

        fut.add_done_callback(_done)

    def _work(self, url: str, transform: Callable = None):
        res = fetch(url, self.timeout)
        return transform(res) if transform else res

    def shutdown(self):
        self._pool.shutdown(wait=False, cancel_futures=True)


class Connectivity:
    """Online/offline flag; subscribers hear about transitions only."""

    def __init__(self, online: bool = True):
        self._online = bool(online)
        self._subs: List[Callable[[bool], None]] = []

    @property
    def online(self) -> bool:
        return self._online

    def set_online(self, flag: bool):
        flag = bool(flag)
        if flag == self._online:
            return
        self._online = flag
        _LOGGER.info("network %s", "online" if flag else "offline")
        for cb in list(self._subs):
            cb(flag)

    def subscribe(self, cb: Callable[[bool], None]):
        if cb not in self._subs:
            self._subs.append(cb)

    def unsubscribe(self, cb: Callable[[bool], None]):
        if cb in self._subs:
            self._subs.remove(cb)
