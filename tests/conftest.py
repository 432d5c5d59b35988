"""Shared fixtures: fixed clock, ledger state with the default catalog, in-memory mirror DB."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from core.entities import RoomIdentity
from core.room_manager import RoomManager
from core.store import LedgerState, set_ledger_state
from core.usage_ledger import UsageLedger
from database import Base
from services.catalog_service import default_catalog_items

NOW = datetime(2026, 3, 14, 18, 0, 0, tzinfo=timezone.utc)

ROOM_IDS = ["room-1", "room-2", "room-3", "room-4"]


class FakeClock:
    def __init__(self, start=NOW):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)
        return self.current


def default_identities():
    return [RoomIdentity(id=room_id, name=f"{index + 1}번방") for index, room_id in enumerate(ROOM_IDS)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state(clock):
    state = LedgerState(clock=clock)
    UsageLedger.apply_catalog(state, default_catalog_items())
    RoomManager.register_rooms(state, default_identities())
    return state


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def reset_global_ledger():
    yield
    set_ledger_state(None)
