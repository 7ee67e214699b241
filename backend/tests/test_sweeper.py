import asyncio
from datetime import timedelta

from app.database import SessionLocal
from app.models.artwork import ArtworkStatus
from app.services.auction_service import AuctionService
from app.services.broadcaster import AUCTION_ENDED
from app.services.sweeper import ExpirySweeper

from conftest import ARTIST, BUYER_A, T0


def _start(service, title, hours, price=1000):
    artwork = service.create_artwork(artist_id=ARTIST, title=title, starting_price=price)
    service.approve(artwork.id)
    return service.start_auction(artwork.id, ARTIST, hours, now=T0)


def test_sweep_resolves_only_overdue_auctions(db, service, broadcaster):
    short = _start(service, "Short", 1)
    sold = _start(service, "Sold", 1)
    long_running = _start(service, "Long", 5)
    service.place_bid(sold.id, BUYER_A, 1100, now=T0 + timedelta(minutes=5))

    sweeper = ExpirySweeper(SessionLocal, broadcaster)
    resolved = sweeper.sweep_once(now=T0 + timedelta(hours=2))
    assert sorted(resolved) == sorted([short.id, sold.id])

    assert service.get_artwork(short.id, now=T0).status == ArtworkStatus.EXPIRED
    sold_artwork = service.get_artwork(sold.id, now=T0)
    assert sold_artwork.status == ArtworkStatus.SOLD
    assert sold_artwork.winner_id == BUYER_A
    assert service.get_artwork(long_running.id, now=T0 + timedelta(hours=2)).status == ArtworkStatus.ACTIVE


def test_second_sweep_is_a_no_op(service, broadcaster, active_artwork):
    sweeper = ExpirySweeper(SessionLocal, broadcaster)
    later = T0 + timedelta(hours=2)
    assert sweeper.sweep_once(now=later) == [active_artwork.id]
    assert sweeper.sweep_once(now=later) == []
    assert len(broadcaster.of_kind(AUCTION_ENDED)) == 1


def test_sweep_after_lazy_expiry_does_nothing(service, broadcaster, active_artwork):
    later = T0 + timedelta(hours=2)
    service.get_artwork(active_artwork.id, now=later)
    sweeper = ExpirySweeper(SessionLocal, broadcaster)
    assert sweeper.sweep_once(now=later) == []
    assert len(broadcaster.of_kind(AUCTION_ENDED)) == 1


def test_one_failing_artwork_does_not_stop_the_batch(service, broadcaster):
    first = _start(service, "First", 1)
    second = _start(service, "Second", 1)

    class FlakyService(AuctionService):
        def resolve_if_expired(self, artwork_id, now=None):
            if artwork_id == first.id:
                raise RuntimeError("write failed")
            return super().resolve_if_expired(artwork_id, now=now)

    later = T0 + timedelta(hours=2)
    sweeper = ExpirySweeper(SessionLocal, broadcaster, service_factory=FlakyService)
    assert sweeper.sweep_once(now=later) == [second.id]

    # the next tick retries the one that failed
    assert ExpirySweeper(SessionLocal, broadcaster).sweep_once(now=later) == [first.id]


def test_start_and_stop_lifecycle(broadcaster):
    async def scenario():
        sweeper = ExpirySweeper(SessionLocal, broadcaster, interval_seconds=0.01)
        sweeper.start()
        await asyncio.sleep(0.05)
        running = sweeper.running
        await sweeper.stop()
        return running, sweeper.running

    assert asyncio.run(scenario()) == (True, False)
