import pytest

from planify.access import AccessControl
from planify.budgets import BudgetRecalculator
from planify.events import EventBus
from planify.notifications import NotificationSink, register_notification_handlers
from planify.store import StoreRegistry


@pytest.fixture
def registry():
    return StoreRegistry.in_memory()


@pytest.fixture
def access(registry):
    return AccessControl(registry)


@pytest.fixture
def recalculator(registry):
    return BudgetRecalculator(registry.budgets, registry.expenses)


@pytest.fixture
def sink(registry):
    return NotificationSink(registry.notifications)


@pytest.fixture
def bus(sink):
    bus = EventBus()
    register_notification_handlers(bus, sink)
    return bus
