import os
import sys
import pytest


def _ensure_project_root_on_sys_path() -> None:
    here = os.path.dirname(__file__)
    project_root = os.path.abspath(os.path.join(here, "..", ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_sys_path()


@pytest.fixture(autouse=True)
def _clear_soundbex_env():
    """Ensure SOUNDBEX_* settings from the developer's shell do not leak into tests."""
    keys = [k for k in os.environ if k.startswith('SOUNDBEX_')]
    backup = {k: os.environ[k] for k in keys}
    for k in keys:
        os.environ.pop(k, None)
    try:
        yield
    finally:
        for k in [k for k in os.environ if k.startswith('SOUNDBEX_')]:
            os.environ.pop(k, None)
        os.environ.update(backup)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()
