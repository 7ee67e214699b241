import os

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import Requester, get_auction_service, get_requester
from app.database import get_db
from app.schemas.bid import BidResponse, PlaceBidBody, PlaceBidResponse
from app.services import bid_ledger
from app.services.auction_service import AuctionService

router = APIRouter(prefix="/bids", tags=["bids"])

BID_HISTORY_LIMIT = int(os.getenv("BID_HISTORY_LIMIT", "20"))


@router.get("/artwork/{artwork_id}", response_model=list[BidResponse])
def bid_history(
    artwork_id: int,
    limit: int = Query(BID_HISTORY_LIMIT, ge=1, le=200),
    service: AuctionService = Depends(get_auction_service),
):
    """Bids on an artwork, newest first."""
    return service.history(artwork_id, limit=limit)


@router.get("/mine", response_model=list[BidResponse])
def my_bids(requester: Requester = Depends(get_requester), db: Session = Depends(get_db)):
    return bid_ledger.bids_by_bidder(db, requester.id)


@router.post("/{artwork_id}", response_model=PlaceBidResponse, status_code=201)
def place_bid(
    artwork_id: int,
    payload: PlaceBidBody,
    requester: Requester = Depends(get_requester),
    service: AuctionService = Depends(get_auction_service),
):
    bid = service.place_bid(artwork_id, requester.id, payload.amount)
    artwork = service.get_artwork(artwork_id)
    return PlaceBidResponse(
        message="Bid placed successfully",
        bid=BidResponse.model_validate(bid),
        current_bid=artwork.current_bid,
        total_bids=artwork.total_bids,
    )
