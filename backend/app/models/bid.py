from sqlalchemy import Column, Integer, Float, ForeignKey

from app.models.base import Base, UTCDateTime, utcnow


class Bid(Base):
    """Accepted bid. Rows are only ever inserted."""
    __tablename__ = "bids"

    id = Column(Integer, primary_key=True, index=True)
    artwork_id = Column(Integer, ForeignKey("artworks.id"), nullable=False, index=True)
    bidder_id = Column(Integer, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
