from datetime import timedelta

from app.services import bid_ledger

from conftest import ARTIST, BUYER_A, BUYER_B, BUYER_C, T0


def test_highest_prefers_amount_then_earliest(db, service, active_artwork):
    # equal amounts only arise from bad data; the first bid keeps the lead
    bid_ledger.insert(db, active_artwork.id, BUYER_B, 1500, created_at=T0 + timedelta(minutes=2))
    bid_ledger.insert(db, active_artwork.id, BUYER_A, 1500, created_at=T0 + timedelta(minutes=1))
    bid_ledger.insert(db, active_artwork.id, BUYER_C, 1200, created_at=T0 + timedelta(minutes=3))
    db.commit()

    top = bid_ledger.highest_for(db, active_artwork.id)
    assert top.bidder_id == BUYER_A
    assert top.amount == 1500


def test_highest_is_none_without_bids(db, active_artwork):
    assert bid_ledger.highest_for(db, active_artwork.id) is None


def test_history_is_newest_first_and_limited(db, service, active_artwork):
    for minute, (bidder, amount) in enumerate([(BUYER_A, 1100), (BUYER_B, 1200), (BUYER_A, 1300)], start=1):
        service.place_bid(active_artwork.id, bidder, amount, now=T0 + timedelta(minutes=minute))

    history = bid_ledger.history_for(db, active_artwork.id, limit=2)
    assert [b.amount for b in history] == [1300, 1200]
    assert [b.amount for b in service.history(active_artwork.id)] == [1300, 1200, 1100]


def test_distinct_bidders_with_exclusions(db, service, active_artwork):
    at = T0 + timedelta(minutes=1)
    service.place_bid(active_artwork.id, BUYER_A, 1100, now=at)
    service.place_bid(active_artwork.id, BUYER_B, 1200, now=at)
    service.place_bid(active_artwork.id, BUYER_A, 1300, now=at)
    service.place_bid(active_artwork.id, BUYER_C, 1400, now=at)

    assert bid_ledger.distinct_bidders_for(db, active_artwork.id) == [BUYER_A, BUYER_B, BUYER_C]
    assert bid_ledger.distinct_bidders_for(db, active_artwork.id, excluding={BUYER_C, BUYER_A}) == [BUYER_B]
    assert ARTIST not in bid_ledger.distinct_bidders_for(db, active_artwork.id)


def test_bids_by_bidder(db, service, active_artwork):
    at = T0 + timedelta(minutes=1)
    service.place_bid(active_artwork.id, BUYER_A, 1100, now=at)
    service.place_bid(active_artwork.id, BUYER_B, 1200, now=at + timedelta(seconds=1))
    service.place_bid(active_artwork.id, BUYER_A, 1300, now=at + timedelta(seconds=2))

    assert [b.amount for b in bid_ledger.bids_by_bidder(db, BUYER_A)] == [1300, 1100]
