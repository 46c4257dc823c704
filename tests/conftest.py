"""
Shared test fixtures.

Provides a throwaway SQLite database per test, a small reference score table,
recording stand-ins for the broadcaster subscribers and pick timers, and a
factory for fully wired DraftManager instances.
"""
import os

# Keep the module-level engine away from any real database file
os.environ.setdefault("DATABASE_URL", "sqlite://")

import random
from typing import Any, Dict, List

import pytest
from sqlalchemy.orm import sessionmaker

from database import Base, build_engine
from models import Category
from schemas import DraftSettings
from core.broadcaster import DraftBroadcaster, Subscriber
from core.draft_manager import DraftManager
from services.pool_service import StaticPoolSupplier
from services.reference_table import ReferenceScoreTable
from services.roster_service import StaticRosterSupplier
from services.scoring_service import ScoringEngine


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite so worker threads share one database."""
    engine = build_engine(f"sqlite:///{tmp_path / 'draft_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

SAMPLE_SCORES: List[Dict[str, Any]] = [
    {"corps": "Alpha", "score": 95.0, "captions": {"ge1": 19.0, "musicbrass": 18.0}},
    {"corps": "Bravo", "score": 90.0, "captions": {"ge1": 18.5, "musicbrass": 19.0}},
    {"corps": "Charlie", "score": 85.0, "captions": {"ge1": 17.0, "musicbrass": 17.5}},
    {"corps": "Delta", "score": 82.0, "captions": {"ge1": 16.0, "musicbrass": 16.5}},
    {"corps": "Riverside", "score": 88.0, "captions": {"musicbrass": 18.0, "ge1": 19.5}},
]

TWO_CATEGORIES = [Category.GENERAL_EFFECT_1, Category.MUSIC_BRASS]


@pytest.fixture
def reference_table():
    return ReferenceScoreTable.from_json(SAMPLE_SCORES)


@pytest.fixture
def scoring_engine(reference_table):
    return ScoringEngine(reference_table)


@pytest.fixture
def two_category_settings():
    """ge1 + musicbrass only: two rounds, 2 x participants picks"""
    return DraftSettings(
        time_limit=60,
        auto_pick=True,
        randomize_order=False,
        categories={category: True for category in TWO_CATEGORIES},
    )


@pytest.fixture
def pools():
    entities = ["Alpha", "Bravo", "Charlie", "Delta"]
    return StaticPoolSupplier({category: entities for category in TWO_CATEGORIES})


@pytest.fixture
def rosters():
    return StaticRosterSupplier({
        "league-1": ["A", "B", "C"],
        "league-solo": ["A"],
    })


# =============================================================================
# RECORDING STAND-INS
# =============================================================================

class RecordingSubscriber(Subscriber):
    def __init__(self, subscriber_id: str = None):
        super().__init__(subscriber_id)
        self.messages: List[Dict[str, Any]] = []

    def deliver(self, message):
        self.messages.append(message)

    @property
    def events(self) -> List[str]:
        return [m["event"] for m in self.messages]


class FailingSubscriber(Subscriber):
    def deliver(self, message):
        raise ConnectionError("socket closed")


class RecordingTimers:
    """Duck-typed PickTimers that records instead of starting threads"""

    def __init__(self):
        self.on_timeout = None
        self.armed: Dict[str, int] = {}
        self.history: List[tuple] = []

    def arm(self, draft_id, sequence_number, seconds):
        self.armed[draft_id] = sequence_number
        self.history.append(("arm", draft_id, sequence_number, seconds))

    def cancel(self, draft_id):
        self.history.append(("cancel", draft_id))
        return self.armed.pop(draft_id, None) is not None

    def cancel_all(self):
        self.armed.clear()

    def armed_sequence(self, draft_id):
        return self.armed.get(draft_id)


@pytest.fixture
def broadcaster():
    return DraftBroadcaster()


@pytest.fixture
def timers():
    return RecordingTimers()


@pytest.fixture
def manager(scoring_engine, rosters, pools, broadcaster, timers, session_factory):
    return DraftManager(
        scoring_engine=scoring_engine,
        roster_supplier=rosters,
        pool_supplier=pools,
        broadcaster=broadcaster,
        timers=timers,
        session_factory=session_factory,
        rng=random.Random(0),
    )


@pytest.fixture
def started_draft(manager, db, two_category_settings):
    """Active A, B, C draft over two categories"""
    draft = manager.create_draft(db, "league-1", settings=two_category_settings, draft_order=["A", "B", "C"])
    return manager.start_draft(db, draft.id)
