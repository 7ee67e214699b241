"""
Append-only bid ledger.

Bids are inserted inside the same transaction that advances the artwork's
current bid; nothing here updates or deletes a row.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.models.bid import Bid
from app.models.base import utcnow


def insert(db: Session, artwork_id: int, bidder_id: int, amount: float, created_at: Optional[datetime] = None) -> Bid:
    """Stage a new bid on the session; the caller owns the commit."""
    bid = Bid(
        artwork_id=artwork_id,
        bidder_id=bidder_id,
        amount=float(amount),
        created_at=created_at or utcnow(),
    )
    db.add(bid)
    db.flush()
    return bid


def highest_for(db: Session, artwork_id: int) -> Optional[Bid]:
    """Highest bid on the artwork; equal amounts go to the earliest bid."""
    return (
        db.query(Bid)
        .filter(Bid.artwork_id == artwork_id)
        .order_by(Bid.amount.desc(), Bid.created_at.asc(), Bid.id.asc())
        .first()
    )


def history_for(db: Session, artwork_id: int, limit: int = 20) -> list[Bid]:
    return (
        db.query(Bid)
        .filter(Bid.artwork_id == artwork_id)
        .order_by(Bid.created_at.desc(), Bid.id.desc())
        .limit(limit)
        .all()
    )


def bids_by_bidder(db: Session, bidder_id: int, limit: int = 50) -> list[Bid]:
    return (
        db.query(Bid)
        .filter(Bid.bidder_id == bidder_id)
        .order_by(Bid.created_at.desc(), Bid.id.desc())
        .limit(limit)
        .all()
    )


def distinct_bidders_for(db: Session, artwork_id: int, excluding: Optional[set[int]] = None) -> list[int]:
    query = db.query(Bid.bidder_id).filter(Bid.artwork_id == artwork_id).distinct()
    if excluding:
        query = query.filter(Bid.bidder_id.notin_(excluding))
    return sorted(row[0] for row in query.all())
