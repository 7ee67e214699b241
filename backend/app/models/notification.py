from sqlalchemy import Boolean, Column, Integer, String, Text, ForeignKey

from app.models.base import Base, UTCDateTime, utcnow


class NotificationType:
    BID_PLACED = "bid_placed"
    OUTBID = "outbid"
    NEW_BID = "new_bid"
    AUCTION_STARTED = "auction_started"
    AUCTION_ENDED = "auction_ended"
    AUCTION_WON = "auction_won"
    ARTWORK_APPROVED = "artwork_approved"
    ARTWORK_REJECTED = "artwork_rejected"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, nullable=False, index=True)
    type = Column(String(50), nullable=False)
    message = Column(Text, nullable=False)
    artwork_id = Column(Integer, ForeignKey("artworks.id"), nullable=True)
    bid_id = Column(Integer, ForeignKey("bids.id"), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
