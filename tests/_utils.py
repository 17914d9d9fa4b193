import io, os
from concurrent.futures import Future
from PIL import Image
from backend.network import LoadResult
from utils.errors import RemoteUnavailable


def png_bytes(w=16, h=16, color=(200, 40, 40)) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (w, h), color).save(out, format="PNG")
    return out.getvalue()


def noisy_png(w=200, h=200) -> bytes:
    out = io.BytesIO()
    Image.frombytes("RGB", (w, h), os.urandom(w * h * 3)).save(out, format="PNG")
    return out.getvalue()


class ManualLoader:
    """Records load requests; the test decides when and how each completes."""

    def __init__(self):
        self.calls = []

    def load(self, url, on_load, on_error, transform=None):
        self.calls.append((url, on_load, on_error, transform))

    @property
    def urls(self):
        return [c[0] for c in self.calls]

    def succeed(self, i=-1, data=None, content_type="image/png", unreadable=False):
        url, on_load, _, transform = self.calls[i]
        if data is None and not unreadable:
            data = png_bytes()
        res = LoadResult(url, data, content_type)
        on_load(transform(res) if transform else res)

    def fail(self, i=-1, exc=None):
        url, _, on_error, _ = self.calls[i]
        on_error(exc or RemoteUnavailable(url))


class ManualExecutor:
    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args):
        f = Future()
        self.jobs.append((f, fn, args))
        return f

    def run(self, i):
        f, fn, args = self.jobs[i]
        f.set_result(fn(*args))
