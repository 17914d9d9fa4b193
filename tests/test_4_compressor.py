import io

import pytest
from PIL import Image

from backend import compressor
from backend.compressor import compress, compress_url, encode_inline, mime_for, probe
from backend.images import RefKind
from backend.network import LoadResult
from tests._utils import noisy_png, png_bytes
from utils.errors import CrossOriginBlocked, ImageDecodeError, RemoteUnavailable


def decoded(ref):
    return Image.open(io.BytesIO(ref.payload()))


def test_wide_image_is_scaled_to_max_width_keeping_aspect():
    ref = compress(png_bytes(4000, 1000), quality=0.6, max_width=1920)
    img = decoded(ref)
    assert ref.kind is RefKind.INLINE
    assert img.format == "JPEG"
    assert img.size == (1920, 480)


def test_narrow_image_keeps_its_size():
    img = decoded(compress(png_bytes(300, 120), max_width=1920))
    assert img.size == (300, 120)


def test_transparent_image_is_flattened_to_jpeg():
    out = io.BytesIO()
    Image.new("RGBA", (50, 50), (255, 0, 0, 128)).save(out, format="PNG")
    img = decoded(compress(out.getvalue()))
    assert img.mode == "RGB"


def test_lower_quality_gives_smaller_output():
    data = noisy_png(400, 300)
    low = compress(data, quality=0.3)
    high = compress(data, quality=0.9)
    assert len(low.payload()) < len(high.payload())


@pytest.mark.parametrize("bad", [None, b"", b"<html></html>"])
def test_undecodable_input_gives_none(bad):
    assert compress(bad) is None


def test_probe():
    assert probe(png_bytes(7, 5)) == ("PNG", 7, 5)
    with pytest.raises(ImageDecodeError):
        probe(b"nope")


def test_encode_inline_needs_readable_bytes():
    png = png_bytes()
    ref = encode_inline(LoadResult("https://x/icon", png, ""))
    assert ref.mime == "image/png"
    assert ref.payload() == png
    with pytest.raises(CrossOriginBlocked):
        encode_inline(LoadResult("https://x/icon", None))


def test_mime_prefers_image_content_type():
    assert mime_for(png_bytes(), "image/x-icon") == "image/x-icon"
    assert mime_for(png_bytes(), "text/html") == "image/png"



def test_compress_url(monkeypatch):
    monkeypatch.setattr(compressor, "fetch", lambda url, timeout=None: LoadResult(url, png_bytes(3000, 300)))
    assert decoded(compress_url("https://img.example/a", max_width=1000)).size == (1000, 100)

    def _down(url, timeout=None):
        raise RemoteUnavailable(url)
    monkeypatch.setattr(compressor, "fetch", _down)
    assert compress_url("https://img.example/a") is None
