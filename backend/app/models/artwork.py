from sqlalchemy import Column, Integer, String, Text, Float, Index

from app.models.base import Base, UTCDateTime, utcnow


class ArtworkStatus:
    WAITING = "waiting"
    PENDING = "pending"
    ACTIVE = "active"
    SOLD = "sold"
    EXPIRED = "expired"
    REJECTED = "rejected"

    ALL = (WAITING, PENDING, ACTIVE, SOLD, EXPIRED, REJECTED)
    # statuses that carry auction start/end times
    SCHEDULED = (ACTIVE, SOLD, EXPIRED)
    STARTABLE = (PENDING, EXPIRED)
    # owner may still change descriptive fields, or withdraw the artwork
    EDITABLE = (WAITING, PENDING)
    DELETABLE = (WAITING, PENDING, REJECTED)


class Artwork(Base):
    __tablename__ = "artworks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    image_url = Column(String(512), nullable=True)  # populated by the upload layer
    artist_id = Column(Integer, nullable=False, index=True)  # user reference, owned by the auth service
    starting_price = Column(Float, nullable=False)
    current_bid = Column(Float, nullable=True)
    total_bids = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=ArtworkStatus.WAITING, nullable=False)
    rejection_reason = Column(Text, nullable=True)
    auction_start_time = Column(UTCDateTime, nullable=True)
    auction_end_time = Column(UTCDateTime, nullable=True)
    winner_id = Column(Integer, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, onupdate=utcnow, nullable=True)

    __table_args__ = (
        Index("ix_artworks_status_auction_end_time", "status", "auction_end_time"),
    )
