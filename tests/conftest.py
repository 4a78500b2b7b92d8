import pytest
from qmlsync.config import reset_config

QMLSYNC_ENV = (
    "QMLSYNC_DEBOUNCE_MS",
    "QMLSYNC_HISTORY_CAPACITY",
    "QMLSYNC_WINDOW_WIDTH",
    "QMLSYNC_WINDOW_HEIGHT",
    "QMLSYNC_WINDOW_TITLE",
    "QMLSYNC_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Defaults only: no user config file, no QMLSYNC_* overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for key in QMLSYNC_ENV:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
