import os
from typing import Optional

from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QLabel, QLineEdit, QPushButton,
    QRadioButton, QButtonGroup, QFileDialog, QWidget
)

from backend.background import BackgroundConfig, BackgroundMode
from backend.images import ImageRef
from backend.shortcuts import Shortcut
from utils.icons import pixmap_from_bytes

UPLOAD_MAX_BYTES = 4 * 1024 * 1024


class ShortcutDialog(QDialog):
    def __init__(self, parent: QWidget = None, shortcut: Optional[Shortcut] = None):
        super().__init__(parent)
        self.setWindowTitle("编辑捷径" if shortcut else "添加新捷径")
        self.setFixedWidth(320)
        self.custom_icon = shortcut.custom_icon if shortcut else None

        v = QVBoxLayout(self)
        v.setContentsMargins(20, 20, 20, 20)
        v.setSpacing(8)

        self.ed_title = QLineEdit(shortcut.title if shortcut else "")
        self.ed_title.setPlaceholderText("网站名称")
        self.ed_url = QLineEdit(shortcut.url if shortcut else "")
        self.ed_url.setPlaceholderText("https://...")
        self.ed_url.returnPressed.connect(self._save)

        v.addWidget(QLabel("名称")); v.addWidget(self.ed_title)
        v.addWidget(QLabel("链接")); v.addWidget(self.ed_url)

        self.icon_row = QWidget()
        h = QHBoxLayout(self.icon_row); h.setContentsMargins(0, 0, 0, 0)
        self.lbl_icon = QLabel(); self.lbl_icon.setFixedSize(24, 24)
        btn_clear = QPushButton("清除"); btn_clear.clicked.connect(self._clear_icon)
        h.addWidget(self.lbl_icon); h.addWidget(QLabel("已使用自定义图标"), 1); h.addWidget(btn_clear)
        v.addWidget(self.icon_row)
        self._refresh_icon()

        self.btn_save = QPushButton("更新" if shortcut else "保存")
        self.btn_save.clicked.connect(self._save)
        v.addWidget(self.btn_save)

    def _refresh_icon(self):
        self.icon_row.setVisible(bool(self.custom_icon))
        if not self.custom_icon:
            return
        try:
            pm = pixmap_from_bytes(ImageRef.from_data_url(self.custom_icon).payload())
            self.lbl_icon.setPixmap(pm.scaled(24, 24, Qt.KeepAspectRatio, Qt.SmoothTransformation))
        except ValueError:
            self.lbl_icon.clear()

    def _clear_icon(self):
        self.custom_icon = None
        self._refresh_icon()

    def _save(self):
        if not self.ed_title.text().strip() or not self.ed_url.text().strip():
            return
        self.accept()

    def values(self):
        return self.ed_title.text().strip(), self.ed_url.text().strip(), self.custom_icon


class BackgroundDialog(QDialog):
    def __init__(self, parent: QWidget = None, cfg: BackgroundConfig = None):
        super().__init__(parent)
        self.setWindowTitle("背景设置")
        self.setFixedWidth(360)
        self.cfg = cfg or BackgroundConfig()

        v = QVBoxLayout(self)
        v.setContentsMargins(20, 20, 20, 20)
        v.setSpacing(6)

        self.group = QButtonGroup(self)
        self.radios = {}
        for mode, text in (
            (BackgroundMode.DEFAULT, "默认背景"),
            (BackgroundMode.DAILY_REMOTE, "Bing 每日一图"),
            (BackgroundMode.CUSTOM_API, "自定义图片 API"),
            (BackgroundMode.LOCAL_UPLOAD, "本地上传"),
        ):
            rb = QRadioButton(text)
            self.group.addButton(rb)
            self.radios[mode] = rb
            v.addWidget(rb)
            if mode is BackgroundMode.CUSTOM_API:
                self.ed_api = QLineEdit(self.cfg.custom_api)
                self.ed_api.setPlaceholderText("输入图片 API 地址...")
                v.addWidget(self.ed_api)
            elif mode is BackgroundMode.LOCAL_UPLOAD:
                self.btn_upload = QPushButton("点击选择图片 (Max 4MB)")
                self.btn_upload.clicked.connect(self._pick)
                v.addWidget(self.btn_upload)
        self.radios[self.cfg.mode].setChecked(True)

        self.lbl_err = QLabel("")
        self.lbl_err.setWordWrap(True)
        self.lbl_err.setStyleSheet("color: #EC4845;")
        self.lbl_err.setVisible(False)
        v.addWidget(self.lbl_err)

        btn_ok = QPushButton("应用")
        btn_ok.clicked.connect(self.accept)
        v.addSpacing(8)
        v.addWidget(btn_ok)

    def _pick(self):
        p, _ = QFileDialog.getOpenFileName(self, "选择图片", "", "Images (*.png *.jpg *.jpeg *.gif *.webp *.bmp)")
        if not p:
            return
        try:
            ref = ImageRef.from_file(p, UPLOAD_MAX_BYTES)
        except (OSError, ValueError) as e:
            self._show_err(str(e))
            return
        self.cfg = BackgroundConfig(BackgroundMode.LOCAL_UPLOAD, self.cfg.custom_api, ref.value)
        self.radios[BackgroundMode.LOCAL_UPLOAD].setChecked(True)
        self.btn_upload.setText(os.path.basename(p))

    def _show_err(self, msg: str):
        self.lbl_err.setText(msg)
        self.lbl_err.setVisible(True)

    def result_config(self) -> BackgroundConfig:
        mode = next(m for m, rb in self.radios.items() if rb.isChecked())
        return BackgroundConfig(mode, self.ed_api.text().strip() or self.cfg.custom_api, self.cfg.upload_data)
