import threading

import pytest

from sizeof_extensions.context import SizingContext
from sizeof_extensions.permission import Escalator


class FakeOverride:
    """Records override attempts and grants them (or not)."""

    def __init__(self, granted=True):
        self.granted = granted
        self.calls = []
        self._lock = threading.Lock()

    def attempt(self, field):
        with self._lock:
            self.calls.append(field)
        return self.granted


class VetoOverride:
    """Behaves like a host audit hook that forbids the override."""

    def __init__(self, exc=PermissionError):
        self.exc = exc
        self.calls = 0

    def attempt(self, field):
        self.calls += 1
        raise self.exc("override forbidden by host policy")


@pytest.fixture
def override():
    return FakeOverride()


@pytest.fixture
def denying_override():
    return FakeOverride(granted=False)


@pytest.fixture
def vetoing_override():
    return VetoOverride()


@pytest.fixture
def escalator(override):
    return Escalator(override)


@pytest.fixture
def wide(escalator):
    return SizingContext(wide=True, escalator=escalator)


@pytest.fixture
def narrow(escalator):
    return SizingContext(wide=False, escalator=escalator)
