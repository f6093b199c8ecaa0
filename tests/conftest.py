import pytest
from unittest.mock import Mock

from trailerscout.api_client import ErrorKind
from trailerscout.cache import TrailerCache
from trailerscout.schemas import ProviderOutcome, Source, TrailerReference


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stand-in for time.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeProvider:
    """
    Provider double with scripted outcomes.

    ``outcomes`` is consumed one per call; the last outcome repeats.
    Every call is appended to ``call_log`` as ``(name, title, year)``.
    """

    def __init__(self, name, source, outcomes, call_log=None):
        self.name = name
        self.source = source
        self._outcomes = list(outcomes)
        self.calls = 0
        self.call_log = call_log if call_log is not None else []

    def fetch_trailer(self, title, year=None):
        self.calls += 1
        self.call_log.append((self.name, title, year))
        outcome = self._outcomes[min(self.calls - 1, len(self._outcomes) - 1)]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def validate_api_key(self):
        return True


def ok(url, source=Source.KINOCHECK):
    return ProviderOutcome.success(TrailerReference(url=url, source=source))


def fail(kind=ErrorKind.NETWORK, message="boom"):
    return ProviderOutcome.failure(kind, message)


def make_response(status_code=200, payload=None, text=""):
    """Build a requests.Response-like mock."""
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text or str(payload)
    response.json.return_value = payload
    return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def cache(clock):
    return TrailerCache(max_size=100, ttl=60, clock=clock)


@pytest.fixture
def call_log():
    return []
