from PyQt5.QtCore import QObject, Qt, pyqtSignal
from PyQt5.QtNetwork import QNetworkConfigurationManager

from backend.network import Connectivity


class MainThreadDispatcher(QObject):
    """Runs callables posted from worker threads on the GUI thread."""

    _call = pyqtSignal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._call.connect(self._run, Qt.QueuedConnection)

    def _run(self, fn):
        fn()

    def post(self, fn):
        self._call.emit(fn)


def watch_online_state(connectivity: Connectivity, parent=None) -> QNetworkConfigurationManager:
    mgr = QNetworkConfigurationManager(parent)
    # without a bearer backend Qt reports offline forever; keep the default then
    if mgr.allConfigurations():
        connectivity.set_online(mgr.isOnline())
    mgr.onlineStateChanged.connect(connectivity.set_online)
    return mgr
