"""
Pytest configuration and fixtures for the dispatch tracker tests
"""
from datetime import date
from pathlib import Path

import pytest

from arrival_dispatch.notifications import InMemoryNotifier
from arrival_dispatch.registry import ReferenceRegistry
from arrival_dispatch.schema import DispatchSettings
from arrival_dispatch.store import ArrivalStore, load_arrivals
from arrival_dispatch.workflow import WorkflowEngine

DATA_DIR = Path(__file__).resolve().parent.parent / "data"
TODAY = date(2026, 2, 20)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def notifier():
    return InMemoryNotifier()


@pytest.fixture
def registry(notifier):
    return ReferenceRegistry(notifier=notifier)


@pytest.fixture
def settings():
    return DispatchSettings()


@pytest.fixture
def seed_arrivals():
    return load_arrivals(DATA_DIR / "mock_arrivals.json")


@pytest.fixture
def store(seed_arrivals, settings, registry):
    """Arrival store holding the twelve seeded arrivals"""
    return ArrivalStore(seed_arrivals, settings=settings, registry=registry)


@pytest.fixture
def empty_store(settings, registry):
    return ArrivalStore(settings=settings, registry=registry)


@pytest.fixture
def workflow(store, notifier):
    return WorkflowEngine(store, notifier=notifier)
