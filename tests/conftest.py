import os

import pytest


@pytest.fixture(scope="session")
def qapp():
    """Offscreen QApplication shared by all Qt tests."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    QtWidgets = pytest.importorskip("PySide6.QtWidgets")
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    yield app
