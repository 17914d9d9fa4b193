import json
import re
import time
from dataclasses import asdict, dataclass, replace
from typing import List, Optional

from utils.errors import PersistenceError
from utils.log import get_logger

_LOGGER = get_logger("backend.shortcuts")

LINKS_KEY = "my-nav-links"
CUSTOM_ICON_MAX_BYTES = 2 * 1024 * 1024


@dataclass(frozen=True)
class Shortcut:
    id: int
    title: str
    url: str
    custom_icon: Optional[str] = None


DEFAULT_SHORTCUTS = [
    Shortcut(1, "Bilibili", "https://www.bilibili.com"),
    Shortcut(2, "GitHub", "https://github.com"),
]


def normalize_url(url: str) -> str:
    url = (url or "").strip()
    if url and not re.match(r"^https?://", url, re.IGNORECASE):
        url = "http://" + url
    return url


def _from_dict(d: dict) -> Shortcut:
    return Shortcut(
        id=int(d["id"]),
        title=str(d.get("title") or ""),
        url=str(d.get("url") or ""),
        custom_icon=d.get("customIcon") or None,
    )


def load_shortcuts(store) -> List[Shortcut]:
    try:
        raw = store.get(LINKS_KEY)
    except PersistenceError as e:
        _LOGGER.warning("shortcut read failed: %s", e)
        raw = None
    if not raw:
        return list(DEFAULT_SHORTCUTS)
    try:
        return [_from_dict(d) for d in json.loads(raw)]
    except (ValueError, KeyError, TypeError) as e:
        _LOGGER.warning("bad shortcut list, using defaults: %s", e)
        return list(DEFAULT_SHORTCUTS)


def save_shortcuts(store, items: List[Shortcut]):
    if not items:
        store.delete(LINKS_KEY)
        return
    rows = []
    for s in items:
        d = asdict(s)
        d["customIcon"] = d.pop("custom_icon")
        rows.append(d)
    store.set(LINKS_KEY, json.dumps(rows, ensure_ascii=False))


def add_shortcut(items: List[Shortcut], title: str, url: str) -> List[Shortcut]:
    if not title or not url:
        return list(items)
    new_id = int(time.time() * 1000)
    while any(s.id == new_id for s in items):
        new_id += 1
    return list(items) + [Shortcut(new_id, title, normalize_url(url))]


def update_shortcut(items: List[Shortcut], sid: int, **changes) -> List[Shortcut]:
    if "url" in changes:
        changes["url"] = normalize_url(changes["url"])
    return [replace(s, **changes) if s.id == sid else s for s in items]


def remove_shortcut(items: List[Shortcut], sid: int) -> List[Shortcut]:
    return [s for s in items if s.id != sid]


def move_shortcut(items: List[Shortcut], sid: int, direction: int) -> List[Shortcut]:
    out = list(items)
    idx = next((i for i, s in enumerate(out) if s.id == sid), -1)
    if idx < 0:
        return out
    j = idx + (1 if direction > 0 else -1)
    if 0 <= j < len(out):
        out[idx], out[j] = out[j], out[idx]
    return out
