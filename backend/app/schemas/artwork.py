from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ArtworkBase(BaseModel):
    title: str
    description: str = ""
    image_url: Optional[str] = None  # set by the upload layer before create


class ArtworkCreate(ArtworkBase):
    starting_price: float = Field(..., gt=0, strict=True)


class ArtworkUpdate(BaseModel):
    """Descriptive fields only; price and status change through the auction flow."""
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class ArtworkResponse(ArtworkBase):
    id: int
    artist_id: int
    starting_price: float
    current_bid: Optional[float] = None
    total_bids: int = 0
    status: str
    rejection_reason: Optional[str] = None
    auction_start_time: Optional[datetime] = None
    auction_end_time: Optional[datetime] = None
    winner_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StartAuctionBody(BaseModel):
    duration_hours: float = Field(..., strict=True)  # range checked by the auction service


class RejectBody(BaseModel):
    reason: Optional[str] = None


class AuctionStats(BaseModel):
    """Admin dashboard counters."""
    artworks_by_status: dict[str, int]
    active_auctions: int
    total_sold_value: float
