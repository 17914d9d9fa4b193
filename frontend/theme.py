APP_QSS = """
* { font-family: 'Segoe UI', 'Microsoft YaHei', Arial, sans-serif; font-size: 12px; color: #fff; }
QMainWindow { background: #1f2937; }
QLabel#Clock { font-size: 84px; font-weight: 300; }
QLabel#Date  { font-size: 14px; color: rgba(255,255,255,.8); letter-spacing: 3px; }
QLabel#Footer { color: rgba(255,255,255,.2); font-size: 10px; letter-spacing: 2px; }
QLineEdit#Search { background: rgba(0,0,0,.25); border: 1px solid rgba(255,255,255,.12); border-radius: 20px; padding: 10px 16px; font-size: 14px; }
QLineEdit#Search:focus { background: rgba(0,0,0,.4); border-color: rgba(255,255,255,.3); }
QComboBox#Engine { background: rgba(255,255,255,.1); border: 1px solid rgba(255,255,255,.1); border-radius: 14px; padding: 6px 10px; }
QComboBox#Engine QAbstractItemView { background: #111827; selection-background-color: rgba(255,255,255,.15); }
QListWidget#Suggest { background: rgba(0,0,0,.45); border: 1px solid rgba(255,255,255,.2); border-radius: 12px; padding: 4px; }
QListWidget#Suggest::item { padding: 6px 10px; border-radius: 8px; }
QListWidget#Suggest::item:selected, QListWidget#Suggest::item:hover { background: rgba(255,255,255,.12); }
QFrame#Tile { background: rgba(255,255,255,.06); border: 1px solid rgba(255,255,255,.06); border-radius: 12px; }
QFrame#Tile:hover { background: rgba(255,255,255,.15); }
QFrame#Tile QLabel#TileTitle { color: rgba(255,255,255,.85); font-size: 11px; }
QPushButton#Add { background: transparent; border: 1px dashed rgba(255,255,255,.15); border-radius: 12px; color: rgba(255,255,255,.4); }
QPushButton#Add:hover { background: rgba(255,255,255,.05); }
QToolButton#Settings { background: transparent; border: 0; color: rgba(255,255,255,.5); font-size: 16px; }
QMenu { background: rgba(0,0,0,.75); border: 1px solid rgba(255,255,255,.2); border-radius: 10px; padding: 4px; }
QMenu::item { padding: 6px 14px; border-radius: 6px; }
QMenu::item:selected { background: rgba(255,255,255,.2); }
QDialog { background: #111827; }
QDialog QLineEdit { background: rgba(255,255,255,.06); border: 1px solid rgba(255,255,255,.1); border-radius: 8px; padding: 8px 10px; }
QDialog QPushButton { background: #fff; color: #111827; border: 0; border-radius: 8px; padding: 8px 16px; font-weight: 600; }
QDialog QPushButton:hover { background: #e5e7eb; }
QRadioButton { padding: 6px 0; }
"""
