import os
import random
import sys
from pathlib import Path

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from lilygalaxy.config import merge_config

SMALL_FLOWERS = {
    "core": {"count": 12},
    "petals": {"count": 4, "starsPerPetal": 6},
    "connections": {"gaps": 6, "starsPerGap": 3},
    "flowerField": {"gridHalfExtent": 1},
    "background": {"count": 20},
}


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def small_config():
    return merge_config(SMALL_FLOWERS)


@pytest.fixture(scope="session")
def qapp():
    from PyQt5 import QtWidgets

    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    yield app
