import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt5.QtWidgets import QApplication

from backend.favicon import IconUpdate, ResolutionState
from backend.images import ImageRef
from backend.shortcuts import Shortcut
from frontend.main_window import ShortcutTile
from tests._utils import png_bytes


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    yield app


def shown(tile) -> bool:
    pm = tile.icon.pixmap()
    return pm is not None and not pm.isNull()


def tile(qapp):
    return ShortcutTile(Shortcut(1, "Example", "https://example.com"))


def test_loaded_icon_is_shown(qapp):
    t = tile(qapp)
    t.set_icon(IconUpdate(ResolutionState.TRYING_TIER, 0, ImageRef.url("https://x/i.png"), png_bytes()))
    assert shown(t)


def test_undecodable_bytes_show_placeholder(qapp):
    t = tile(qapp)
    t.set_icon(IconUpdate(ResolutionState.USING_CACHE, -1, ImageRef.url("https://x/i.png"), b"<html>gone</html>"))
    assert shown(t)


def test_pending_load_leaves_tile_empty_until_settled(qapp):
    t = tile(qapp)
    t.set_icon(IconUpdate(ResolutionState.TRYING_TIER, 0, ImageRef.url("https://x/i.png"), None))
    assert not shown(t)
    t.set_icon(IconUpdate(ResolutionState.FALLBACK, 2, None, None))
    assert shown(t)
