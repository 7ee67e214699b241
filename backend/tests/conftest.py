import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SWEEPER_ENABLED"] = "false"

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.database import SessionLocal, engine
from app.models.base import Base
import app.models  # noqa: F401
from app.services.auction_service import AuctionService

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
ARTIST = 1
BUYER_A = 2
BUYER_B = 3
BUYER_C = 4


class RecordingBroadcaster:
    """Stands in for the WebSocket broadcaster and keeps every published event."""

    def __init__(self):
        self.events = []

    def publish(self, event, data, room=None):
        self.events.append((event, data, room))
        return 1

    def of_kind(self, event):
        return [e for e in self.events if e[0] == event]


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(reset_db):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def service(db, broadcaster):
    return AuctionService(db, broadcaster)


@pytest.fixture
def pending_artwork(service):
    artwork = service.create_artwork(artist_id=ARTIST, title="Blue Harbour", starting_price=1000)
    return service.approve(artwork.id, now=T0 - timedelta(days=1))


@pytest.fixture
def active_artwork(service, pending_artwork):
    """Auction running from T0 for one hour."""
    return service.start_auction(pending_artwork.id, ARTIST, 1, now=T0)


@pytest.fixture
def client(reset_db):
    from app.main import app as fastapi_app

    with TestClient(fastapi_app) as c:
        yield c
