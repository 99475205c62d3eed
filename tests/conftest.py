import pytest

from sandbot.config import SessionConfig
from sandbot.controller import SandBotController
from sandbot.device import MockSandTable
from sandbot.scheduler import ManualScheduler
from sandbot.session import PollingSession


class TableRegistry:
    """Hands out one mock table per host so target switches are observable."""

    def __init__(self):
        self.tables = {}

    def __call__(self, host):
        if host not in self.tables:
            self.tables[host] = MockSandTable(host=host)
        return self.tables[host]

    def add(self, table):
        self.tables[table.host] = table
        return table


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def registry():
    return TableRegistry()


@pytest.fixture
def table(registry):
    return registry.add(MockSandTable(host="table.local"))


@pytest.fixture
def messages():
    return []


@pytest.fixture
def session(registry, scheduler, messages):
    s = PollingSession(client_factory=registry, scheduler=scheduler, status_cb=messages.append)
    yield s
    s.dispose()


@pytest.fixture
def controller(session, messages):
    return SandBotController(session, status_cb=messages.append)


@pytest.fixture
def connected(controller, table, scheduler):
    """Controller already polling ``table.local`` with one successful poll."""
    controller.configure(SessionConfig(device_address=table.host))
    scheduler.advance(0)
    return controller
