import os, sqlite3, threading
from contextlib import contextmanager
from typing import List, Optional

from utils import config
from utils.errors import PersistenceError, PersistenceFull


class Store:
    """String key-value store with a finite capacity.

    Capacity is the summed length of every key and value. A write that would
    go over it raises PersistenceFull and keeps the previous value.
    """

    def __init__(self, path: str, capacity: int = 5 * 1024 * 1024):
        self.path = path
        self.capacity = capacity
        self._lock = threading.Lock()
        d = os.path.dirname(path)
        if d:
            os.makedirs(d, exist_ok=True)

    def _conn(self):
        c = sqlite3.connect(self.path)
        c.execute("CREATE TABLE IF NOT EXISTS kv (k TEXT PRIMARY KEY, v TEXT)")
        return c

    @contextmanager
    def _session(self):
        with self._lock:
            try:
                c = self._conn()
            except sqlite3.Error as e:
                raise PersistenceError(str(e)) from e
            try:
                yield c
            except sqlite3.Error as e:
                raise PersistenceError(str(e)) from e
            finally:
                c.close()

    def get(self, k: str, default: Optional[str] = None) -> Optional[str]:
        with self._session() as c:
            row = c.execute("SELECT v FROM kv WHERE k=?", (k,)).fetchone()
            return row[0] if row else default

    def set(self, k: str, v: str):
        v = v or ""
        with self._session() as c:
            row = c.execute(
                "SELECT COALESCE(SUM(LENGTH(k) + LENGTH(v)), 0) FROM kv WHERE k != ?", (k,)
            ).fetchone()
            needed = row[0] + len(k) + len(v)
            if needed > self.capacity:
                raise PersistenceFull(k, needed, self.capacity)
            c.execute(
                "INSERT INTO kv(k,v) VALUES(?,?) "
                "ON CONFLICT(k) DO UPDATE SET v=excluded.v",
                (k, v)
            )
            c.commit()

    def delete(self, k: str):
        with self._session() as c:
            c.execute("DELETE FROM kv WHERE k=?", (k,))
            c.commit()

    def keys(self, prefix: str = "") -> List[str]:
        with self._session() as c:
            rows = c.execute("SELECT k FROM kv ORDER BY k").fetchall()
            return [r[0] for r in rows if r[0].startswith(prefix)]

    def usage(self) -> int:
        with self._session() as c:
            row = c.execute("SELECT COALESCE(SUM(LENGTH(k) + LENGTH(v)), 0) FROM kv").fetchone()
            return int(row[0])


_DEFAULT = None
_DEFAULT_LOCK = threading.Lock()

def default_store() -> Store:
    global _DEFAULT
    with _DEFAULT_LOCK:
        if _DEFAULT is None:
            _DEFAULT = Store(config.DB_PATH, config.STORE_CAPACITY)
        return _DEFAULT
