import pytest

from fakes import FakeClock, FakeTimerFactory, RecordingOverlay
from graydetox.engine.grayscale import GrayscaleAppsFeature
from graydetox.engine.pause import PauseButtonFeature
from graydetox.engine.session import ScreenTimeSession
from graydetox.engine.settings import InMemorySettingsStore


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemorySettingsStore()


@pytest.fixture
def overlay():
    return RecordingOverlay()


@pytest.fixture
def timer_factory():
    return FakeTimerFactory()


@pytest.fixture
def session(clock, store):
    s = ScreenTimeSession("grayscale_apps", clock, store)
    yield s
    s.persister.close()


@pytest.fixture
def grayscale(clock, store, overlay, session):
    """予算0（即時グレースケール）の機能"""
    return GrayscaleAppsFeature(clock=clock, store=store, overlay=overlay, session=session)


@pytest.fixture
def pause_button(clock, store, timer_factory):
    return PauseButtonFeature(clock=clock, store=store, timer_factory=timer_factory)
