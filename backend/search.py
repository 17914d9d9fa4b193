from concurrent.futures import Executor
from typing import Callable, List, Optional, Tuple
from urllib.parse import quote

import requests

from backend.network import USER_AGENT
from utils import config
from utils.errors import PersistenceError
from utils.log import get_logger

_LOGGER = get_logger("backend.search")

ENGINE_KEY = "search-engine-pref"
CUSTOM_URL_KEY = "custom-engine-url"
SUGGEST_URL = "https://api.bing.com/qsonhs.aspx"

ENGINES = {
    "baidu":  {"name": "百度",   "url": "https://www.baidu.com/s?wd=",        "placeholder": "百度一下"},
    "google": {"name": "Google", "url": "https://www.google.com/search?q=",   "placeholder": "Google 搜索"},
    "bing":   {"name": "Bing",   "url": "https://www.bing.com/search?q=",     "placeholder": "微软 Bing"},
    "custom": {"name": "自定义", "url": "",                                   "placeholder": "自定义搜索"},
}


def search_url(engine: str, query: str, custom_url: str = "") -> str:
    base = custom_url if engine == "custom" else ENGINES.get(engine, ENGINES["baidu"])["url"]
    return f"{base}{quote(query.strip(), safe='')}"


def load_engine_pref(store) -> Tuple[str, str]:
    try:
        engine = store.get(ENGINE_KEY) or "baidu"
        custom = store.get(CUSTOM_URL_KEY) or ""
    except PersistenceError as e:
        _LOGGER.warning("search prefs read failed: %s", e)
        return "baidu", ""
    if engine not in ENGINES or (engine == "custom" and not custom):
        engine = "baidu"
    return engine, custom


def save_engine_pref(store, engine: str, custom_url: Optional[str] = None):
    store.set(ENGINE_KEY, engine)
    if custom_url is not None:
        store.set(CUSTOM_URL_KEY, custom_url)


def fetch_suggestions(query: str, timeout: float = None) -> List[str]:
    if not query.strip():
        return []
    try:
        r = requests.get(SUGGEST_URL, params={"q": query},
                         headers={"User-Agent": USER_AGENT},
                         timeout=timeout or config.REQUEST_TIMEOUT)
        r.raise_for_status()
        js = r.json()
    except (requests.RequestException, ValueError) as e:
        _LOGGER.debug("suggestions failed for %r: %s", query, e)
        return []
    try:
        results = js.get("AS", {}).get("Results") or []
        return [s["Txt"] for s in results[0].get("Suggests", []) if s.get("Txt")] if results else []
    except (AttributeError, KeyError, TypeError, IndexError):
        return []


class SuggestionFetcher:
    """Each request supersedes the previous one; stale answers are dropped."""

    def __init__(self, executor: Executor, post: Callable = None,
                 fetch: Callable[[str], List[str]] = fetch_suggestions):
        self._executor = executor
        self._post = post or (lambda fn: fn())
        self._fetch = fetch
        self._generation = 0

    def cancel(self):
        self._generation += 1

    def request(self, query: str, on_result: Callable[[List[str]], None]):
        self._generation += 1
        gen = self._generation
        if not query.strip():
            on_result([])
            return
        fut = self._executor.submit(self._fetch, query)

        def _deliver(items):
            if gen == self._generation:
                on_result(items)

        def _done(f):
            items = [] if f.exception() is not None else f.result()
            self._post(lambda: _deliver(items))

        fut.add_done_callback(_done)
