import hashlib, os, threading, requests
from PyQt5.QtCore import Qt, QRectF
from PyQt5.QtGui import QIcon, QPixmap, QPainter, QPen, QColor

from utils.log import get_logger

_LOGGER = get_logger("utils.icons")
_CACHE_DIR = os.path.join(os.path.dirname(__file__), "_iconcache")
_LOCK = threading.Lock()

def _cache_path(url: str) -> str:
    h = hashlib.sha1(url.encode("utf-8")).hexdigest()
    return os.path.join(_CACHE_DIR, f"{h}.png")

def qicon_from_url(url: str, fallback_path: str = "") -> QIcon:
    """Window icon from a URL, kept on disk after the first download."""
    os.makedirs(_CACHE_DIR, exist_ok=True)
    path = _cache_path(url)

    with _LOCK:
        if not os.path.isfile(path):
            try:
                r = requests.get(url, timeout=6)
                r.raise_for_status()
                with open(path, "wb") as f:
                    f.write(r.content)
            except (requests.RequestException, OSError) as e:
                _LOGGER.debug("app icon %s unavailable: %s", url, e)
                return QIcon(fallback_path) if fallback_path else QIcon()

    return QIcon(QPixmap(path))

def pixmap_from_bytes(data: bytes) -> QPixmap:
    pm = QPixmap()
    if data:
        pm.loadFromData(data)
    return pm

def placeholder_pixmap(size: int = 36) -> QPixmap:
    """Generic globe glyph shown when no favicon could be resolved."""
    pm = QPixmap(size, size)
    pm.fill(Qt.transparent)
    p = QPainter(pm)
    p.setRenderHint(QPainter.Antialiasing, True)
    p.setBrush(QColor(255, 255, 255, 50))
    p.setPen(Qt.NoPen)
    p.drawRoundedRect(QRectF(0, 0, size, size), 8, 8)
    pen = QPen(QColor(255, 255, 255, 130))
    pen.setWidthF(max(1.0, size / 24))
    p.setPen(pen)
    p.setBrush(Qt.NoBrush)
    m = size * 0.28
    r = QRectF(m, m, size - 2 * m, size - 2 * m)
    p.drawEllipse(r)
    p.drawEllipse(r.adjusted(r.width() * 0.3, 0, -r.width() * 0.3, 0))
    p.drawLine(int(r.left()), int(r.center().y()), int(r.right()), int(r.center().y()))
    p.end()
    return pm

ICON_URLS = {
    "favicon": "https://blog.skadi.ltd/wp-content/uploads/2025/12/Gemini_Generated_Image_c428t9c428t9c428.png",
}
