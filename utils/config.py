import json, os
BASE = os.path.dirname(os.path.abspath(__file__))
CFG = os.environ.get("STARTPAGE_CONFIG") or os.path.normpath(os.path.join(BASE, "..", "config.json"))

def _load():
    try:
        with open(CFG, "r", encoding="utf-8") as f: return json.load(f)
    except Exception: return {}

_cfg = _load()
DB_PATH = _cfg.get("DB_PATH", os.path.join(BASE, "app.db"))
LOG_DIR = _cfg.get("LOG_DIR", os.path.normpath(os.path.join(BASE, "..", "logs")))
LOG_LEVEL = _cfg.get("LOG_LEVEL", "INFO")

STORE_CAPACITY = int(_cfg.get("STORE_CAPACITY", 5 * 1024 * 1024))
ICON_INLINE_LIMIT = int(_cfg.get("ICON_INLINE_LIMIT", 50 * 1024))
BG_QUALITY = float(_cfg.get("BG_QUALITY", 0.6))
BG_MAX_WIDTH = int(_cfg.get("BG_MAX_WIDTH", 1920))
REQUEST_TIMEOUT = float(_cfg.get("REQUEST_TIMEOUT", 10))
LOADER_WORKERS = int(_cfg.get("LOADER_WORKERS", 6))

