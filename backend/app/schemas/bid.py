from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class PlaceBidBody(BaseModel):
    # strict: JSON true/"100" must not coerce into a number
    amount: float = Field(..., strict=True)


class BidResponse(BaseModel):
    id: int
    artwork_id: int
    bidder_id: int
    amount: float
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PlaceBidResponse(BaseModel):
    message: str
    bid: BidResponse
    current_bid: float
    total_bids: int
