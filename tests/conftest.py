import io

import pytest

from config import SessionConfig
from log_manager import RunLog


@pytest.fixture
def console():
    return io.StringIO()


@pytest.fixture
def log(console):
    return RunLog(stream=console)


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides):
        settings = dict(
            port="/dev/ttyFAKE0",
            power_off_seconds=0,
            out_prefix=str(tmp_path / "puf_"),
        )
        settings.update(overrides)
        return SessionConfig(**settings)

    return _make
