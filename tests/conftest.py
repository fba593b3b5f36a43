# tests/conftest.py
import itertools

import pytest

from live_score.broadcast import BroadcastHub
from live_score.engine import MatchEngine
from live_score.models import AppState, Team
from live_score.store import MemoryStore


def _counter_ids():
    counter = itertools.count(1)
    return lambda: f"id{next(counter):05d}"


def _fixed_clock():
    ticks = itertools.count(1_700_000_000_000, 1000)
    return lambda: next(ticks)


@pytest.fixture
def roster_state():
    """Two teams, no matches."""
    return AppState(
        teams=[
            Team(id="IND", name="India", short="IND"),
            Team(id="AUS", name="Australia", short="AUS"),
        ]
    )


@pytest.fixture
def store(roster_state):
    return MemoryStore(roster_state)


@pytest.fixture
def hub():
    return BroadcastHub(queue_size=32)


@pytest.fixture
def engine(store, hub):
    return MatchEngine(store, hub, id_factory=_counter_ids(), clock=_fixed_clock())


@pytest.fixture
def live_engine(engine):
    """Engine with IND vs AUS created and IND batting."""
    engine.create_match("IND", "AUS", 20)
    engine.start_innings("IND")
    return engine
