import sys
from PyQt5.QtWidgets import QApplication
from frontend.main_window import MainWindow
from frontend.qt_bridge import MainThreadDispatcher, watch_online_state
from frontend.theme import APP_QSS
from backend.favicon import CACHE_PREFIX as FAVICON_PREFIX
from backend.network import Connectivity, HttpLoader
from utils import config
from utils.db import default_store
from utils.icons import qicon_from_url, ICON_URLS
from utils.log import configure_logging

def main():
    log = configure_logging(config.LOG_DIR, config.LOG_LEVEL)
    app = QApplication(sys.argv)
    app.setApplicationName("Start Page")
    app.setStyleSheet(APP_QSS or "")
    app.setWindowIcon(qicon_from_url(ICON_URLS["favicon"]))

    dispatcher = MainThreadDispatcher(app)
    connectivity = Connectivity()
    watch_online_state(connectivity, app)
    loader = HttpLoader(dispatcher.post, config.REQUEST_TIMEOUT, config.LOADER_WORKERS)

    store = default_store()
    log.info("store %s: %d/%d bytes, %d cached icons", store.path, store.usage(), store.capacity,
             len(store.keys(FAVICON_PREFIX)))
    w = MainWindow(store, loader, connectivity, dispatcher.post)
    w.show()
    log.info("start page ready (online=%s)", connectivity.online)
    code = app.exec_()
    loader.shutdown()
    sys.exit(code)

if __name__ == "__main__":
    main()
