from concurrent.futures import ThreadPoolExecutor
from datetime import datetime as dt

from PyQt5.QtWidgets import (
    QMainWindow, QLabel, QVBoxLayout, QWidget, QHBoxLayout, QPushButton, QFileDialog,
    QMessageBox, QListWidget, QFrame, QInputDialog, QMenu, QGridLayout, QLineEdit,
    QComboBox, QToolButton
)
from PyQt5.QtGui import QPainter, QColor, QDesktopServices
from PyQt5.QtCore import Qt, QUrl, QTimer, pyqtSignal

from backend.background import (
    BackgroundProvisioner, BackgroundUpdate, load_bg_config, save_bg_config
)
from backend.favicon import IconBoard, IconUpdate
from backend.images import ImageRef
from backend.search import (
    ENGINES, SuggestionFetcher, load_engine_pref, save_engine_pref, search_url
)
from backend.shortcuts import (
    CUSTOM_ICON_MAX_BYTES, add_shortcut, load_shortcuts, move_shortcut, remove_shortcut,
    save_shortcuts, update_shortcut
)
from frontend.dialogs import BackgroundDialog, ShortcutDialog
from utils.errors import PersistenceError, PersistenceFull
from utils.icons import pixmap_from_bytes, placeholder_pixmap
from utils.log import get_logger

_LOGGER = get_logger("frontend.main_window")
ICON_PX = 36
GRID_COLS = 6
WEEKDAYS = "一二三四五六日"


class Backdrop(QWidget):
    """Central widget painting the background image, or a neutral fill."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._pm = None

    def set_image(self, data):
        pm = pixmap_from_bytes(data) if data else None
        self._pm = pm if pm is not None and not pm.isNull() else None
        self.update()

    def paintEvent(self, e):
        p = QPainter(self)
        p.fillRect(self.rect(), QColor("#1f2937"))
        if self._pm is not None:
            scaled = self._pm.scaled(self.size(), Qt.KeepAspectRatioByExpanding, Qt.SmoothTransformation)
            x = (self.width() - scaled.width()) // 2
            y = (self.height() - scaled.height()) // 2
            p.drawPixmap(x, y, scaled)
            p.fillRect(self.rect(), QColor(0, 0, 0, 40))
        p.end()


class ShortcutTile(QFrame):
    clicked = pyqtSignal(int)
    menuRequested = pyqtSignal(int, object)

    def __init__(self, shortcut):
        super().__init__()
        self.sid = shortcut.id
        self.url = shortcut.url
        self.setObjectName("Tile")
        self.setFixedSize(88, 88)
        self.setCursor(Qt.PointingHandCursor)
        self.setContextMenuPolicy(Qt.CustomContextMenu)
        self.customContextMenuRequested.connect(lambda pos: self.menuRequested.emit(self.sid, self.mapToGlobal(pos)))

        self.icon = QLabel()
        self.icon.setFixedSize(ICON_PX, ICON_PX)
        self.icon.setAlignment(Qt.AlignCenter)
        title = QLabel(shortcut.title)
        title.setObjectName("TileTitle")
        title.setAlignment(Qt.AlignCenter)

        v = QVBoxLayout(self)
        v.setContentsMargins(6, 10, 6, 8)
        v.setSpacing(6)
        v.addWidget(self.icon, 0, Qt.AlignHCenter)
        v.addWidget(title)

    def set_icon(self, update: IconUpdate):
        if update.data:
            pm = pixmap_from_bytes(update.data)
            if not pm.isNull():
                self.icon.setPixmap(pm.scaled(ICON_PX, ICON_PX, Qt.KeepAspectRatio, Qt.SmoothTransformation))
            else:
                self.icon.setPixmap(placeholder_pixmap(ICON_PX))
        elif update.unavailable or update.source is None:
            self.icon.setPixmap(placeholder_pixmap(ICON_PX))
        else:
            self.icon.clear()

    def mousePressEvent(self, e):
        if e.button() == Qt.LeftButton:
            self.clicked.emit(self.sid)
        super().mousePressEvent(e)


class MainWindow(QMainWindow):
    def __init__(self, store, loader, connectivity, post=None):
        super().__init__()
        self.setWindowTitle("Skadi's home page")
        self.resize(1200, 760)
        self.store = store
        self.links = load_shortcuts(store)
        self.tiles = {}
        self.engine, self.custom_engine_url = load_engine_pref(store)

        self.board = IconBoard(store, loader, connectivity, self._on_icon)
        self.background = BackgroundProvisioner(store, loader, connectivity, self._on_background)
        self.bg_config = load_bg_config(store)
        self._suggest_pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="suggest")
        self.suggester = SuggestionFetcher(self._suggest_pool, post)

        self.backdrop = Backdrop()
        root = QVBoxLayout(self.backdrop)
        root.setContentsMargins(24, 80, 24, 16)
        root.setSpacing(10)

        self.lbl_clock = QLabel(); self.lbl_clock.setObjectName("Clock"); self.lbl_clock.setAlignment(Qt.AlignCenter)
        self.lbl_date = QLabel(); self.lbl_date.setObjectName("Date"); self.lbl_date.setAlignment(Qt.AlignCenter)
        root.addWidget(self.lbl_clock)
        root.addWidget(self.lbl_date)
        root.addSpacing(16)
        root.addWidget(self._build_search(), 0, Qt.AlignHCenter)

        head = QHBoxLayout()
        head.addStretch(1)
        btn_settings = QToolButton(); btn_settings.setObjectName("Settings"); btn_settings.setText("⚙")
        btn_settings.setToolTip("背景设置")
        btn_settings.clicked.connect(self._open_background_settings)
        head.addWidget(btn_settings)

        grid_box = QWidget(); grid_box.setFixedWidth(GRID_COLS * 100)
        gv = QVBoxLayout(grid_box); gv.setContentsMargins(0, 0, 0, 0)
        gv.addLayout(head)
        self.grid = QGridLayout(); self.grid.setSpacing(12)
        gv.addLayout(self.grid)
        root.addSpacing(12)
        root.addWidget(grid_box, 0, Qt.AlignHCenter)
        root.addStretch(1)
        footer = QLabel("Skadi's home page"); footer.setObjectName("Footer"); footer.setAlignment(Qt.AlignCenter)
        root.addWidget(footer)

        self.setCentralWidget(self.backdrop)

        self._tick()
        self.clock = QTimer(self)
        self.clock.timeout.connect(self._tick)
        self.clock.start(1000)

        self._rebuild_grid()
        self.background.apply(self.bg_config)

    # -- search -------------------------------------------------------------

    def _build_search(self) -> QWidget:
        box = QWidget(); box.setFixedWidth(520)
        v = QVBoxLayout(box); v.setContentsMargins(0, 0, 0, 0); v.setSpacing(4)
        row = QHBoxLayout(); row.setSpacing(8)

        self.cb_engine = QComboBox(); self.cb_engine.setObjectName("Engine")
        for key, eng in ENGINES.items():
            self.cb_engine.addItem(eng["name"], key)
        self.cb_engine.setCurrentIndex(max(0, self.cb_engine.findData(self.engine)))
        self.cb_engine.activated.connect(self._on_engine)

        self.ed_search = QLineEdit(); self.ed_search.setObjectName("Search")
        self.ed_search.setAlignment(Qt.AlignCenter)
        self.ed_search.setPlaceholderText(ENGINES[self.engine]["placeholder"])
        self.ed_search.textEdited.connect(lambda _: self._debounce.start())
        self.ed_search.returnPressed.connect(lambda: self._search(self.ed_search.text()))

        row.addWidget(self.cb_engine); row.addWidget(self.ed_search, 1)
        v.addLayout(row)

        self.lst_suggest = QListWidget(); self.lst_suggest.setObjectName("Suggest")
        self.lst_suggest.setVisible(False)
        self.lst_suggest.itemClicked.connect(lambda it: self._search(it.text()))
        v.addWidget(self.lst_suggest)

        self._debounce = QTimer(self)
        self._debounce.setSingleShot(True)
        self._debounce.setInterval(300)
        self._debounce.timeout.connect(lambda: self.suggester.request(self.ed_search.text(), self._show_suggestions))
        return box

    def _on_engine(self, idx: int):
        key = self.cb_engine.itemData(idx)
        if key == "custom":
            url, ok = QInputDialog.getText(self, "自定义搜索引擎", "请输入搜索 URL，关键词会拼接在末尾：",
                                           text=self.custom_engine_url)
            if not ok or not url.strip():
                self.cb_engine.setCurrentIndex(self.cb_engine.findData(self.engine))
                return
            self.custom_engine_url = url.strip()
        self.engine = key
        self.ed_search.setPlaceholderText(ENGINES[key]["placeholder"])
        try:
            save_engine_pref(self.store, key, self.custom_engine_url if key == "custom" else None)
        except PersistenceError as e:
            _LOGGER.warning("search prefs not saved: %s", e)

    def _show_suggestions(self, items):
        self.lst_suggest.clear()
        self.lst_suggest.addItems(items)
        self.lst_suggest.setFixedHeight(min(len(items), 8) * 30 + 10)
        self.lst_suggest.setVisible(bool(items))

    def _search(self, text: str):
        if not text.strip():
            return
        self.suggester.cancel()
        self.lst_suggest.setVisible(False)
        QDesktopServices.openUrl(QUrl(search_url(self.engine, text, self.custom_engine_url)))

    # -- shortcuts ------------------------------------------------------------

    def _rebuild_grid(self):
        while self.grid.count():
            w = self.grid.takeAt(0).widget()
            if w is not None:
                w.deleteLater()
        self.tiles = {}
        for i, s in enumerate(self.links):
            t = ShortcutTile(s)
            t.clicked.connect(self._open_link)
            t.menuRequested.connect(self._tile_menu)
            self.tiles[s.id] = t
            self.grid.addWidget(t, i // GRID_COLS, i % GRID_COLS)
        btn_add = QPushButton("+\n添加"); btn_add.setObjectName("Add"); btn_add.setFixedSize(88, 88)
        btn_add.clicked.connect(self._add_link)
        n = len(self.links)
        self.grid.addWidget(btn_add, n // GRID_COLS, n % GRID_COLS)

        self.board.sync(self.links)
        for s in self.links:
            r = self.board.get(s.id)
            if r is not None:
                self.tiles[s.id].set_icon(r.snapshot())

    def _on_icon(self, sid, update: IconUpdate):
        t = self.tiles.get(sid)
        if t is not None:
            t.set_icon(update)

    def _commit_links(self, links):
        self.links = links
        try:
            save_shortcuts(self.store, links)
        except PersistenceError as e:
            _LOGGER.warning("shortcuts not saved: %s", e)
            QMessageBox.warning(self, "捷径", "本地存储空间不足，捷径未能保存。")
        self._rebuild_grid()

    def _open_link(self, sid: int):
        s = next((x for x in self.links if x.id == sid), None)
        if s:
            QDesktopServices.openUrl(QUrl(s.url))

    def _add_link(self):
        dlg = ShortcutDialog(self)
        if dlg.exec_() != dlg.Accepted:
            return
        title, url, _ = dlg.values()
        self._commit_links(add_shortcut(self.links, title, url))

    def _tile_menu(self, sid: int, pos):
        m = QMenu(self)
        m.addAction("编辑", lambda: self._edit_link(sid))
        m.addAction("自定义图标", lambda: self._pick_icon(sid))
        m.addSeparator()
        m.addAction("向前移动", lambda: self._commit_links(move_shortcut(self.links, sid, -1)))
        m.addAction("向后移动", lambda: self._commit_links(move_shortcut(self.links, sid, 1)))
        m.addSeparator()
        m.addAction("删除", lambda: self._commit_links(remove_shortcut(self.links, sid)))
        m.exec_(pos)

    def _edit_link(self, sid: int):
        s = next((x for x in self.links if x.id == sid), None)
        if s is None:
            return
        dlg = ShortcutDialog(self, s)
        if dlg.exec_() != dlg.Accepted:
            return
        title, url, icon = dlg.values()
        self._commit_links(update_shortcut(self.links, sid, title=title, url=url, custom_icon=icon))

    def _pick_icon(self, sid: int):
        p, _ = QFileDialog.getOpenFileName(self, "自定义图标", "", "Images (*.png *.jpg *.jpeg *.gif *.ico *.webp *.bmp)")
        if not p:
            return
        try:
            ref = ImageRef.from_file(p, CUSTOM_ICON_MAX_BYTES)
        except (OSError, ValueError) as e:
            QMessageBox.warning(self, "自定义图标", f"图标图片请小于 2MB\n{e}")
            return
        self._commit_links(update_shortcut(self.links, sid, custom_icon=ref.value))

    # -- background -----------------------------------------------------------

    def _on_background(self, update: BackgroundUpdate):
        self.backdrop.set_image(update.data)

    def _open_background_settings(self):
        dlg = BackgroundDialog(self, self.bg_config)
        if dlg.exec_() != dlg.Accepted:
            return
        cfg = dlg.result_config()
        try:
            save_bg_config(self.store, cfg)
        except PersistenceFull as e:
            _LOGGER.warning("background config not saved: %s", e)
            QMessageBox.warning(self, "背景设置", "图片太大了，无法保存到本地缓存！")
        except PersistenceError as e:
            _LOGGER.warning("background config not saved: %s", e)
        self.bg_config = cfg
        self.background.apply(cfg)

    # -- misc -----------------------------------------------------------------

    def _tick(self):
        now = dt.now()
        self.lbl_clock.setText(now.strftime("%H:%M"))
        self.lbl_date.setText(f"{now.month}月{now.day}日 星期{WEEKDAYS[now.weekday()]}")

    def closeEvent(self, e):
        self.clock.stop()
        self.background.close()
        self.suggester.cancel()
        self._suggest_pool.shutdown(wait=False)
        super().closeEvent(e)
