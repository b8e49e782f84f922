import io
import os

import pytest

from logbridge import core


@pytest.fixture(autouse=True)
def isolated_registry(tmp_path, monkeypatch):
    """
    Every test starts without a process-wide logger and without LOGBRIDGE_*
    variables or a stray .env file leaking into LoggingSettings.
    """
    for name in list(os.environ):
        if name.startswith("LOGBRIDGE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    core.reset()
    yield
    core.reset()


@pytest.fixture
def stream():
    return io.StringIO()
