from pathlib import Path

import pytest

from backend.network import Connectivity
from tests._utils import ManualLoader
from utils.db import Store


@pytest.fixture()
def store(tmp_path: Path) -> Store:
    """Empty store with the usual 5 MiB capacity."""
    return Store(str(tmp_path / "kv.db"))


@pytest.fixture()
def loader() -> ManualLoader:
    return ManualLoader()


@pytest.fixture()
def connectivity() -> Connectivity:
    return Connectivity(online=True)
