from typing import Optional

from fastapi import APIRouter, Depends, Response

from app.api.deps import Requester, get_auction_service, get_requester
from app.schemas.artwork import ArtworkCreate, ArtworkResponse, ArtworkUpdate, StartAuctionBody
from app.services.auction_service import AuctionService

router = APIRouter(prefix="/artworks", tags=["artworks"])

RECENT_LIMIT = 3


@router.post("", response_model=ArtworkResponse, status_code=201)
def create_artwork(
    payload: ArtworkCreate,
    requester: Requester = Depends(get_requester),
    service: AuctionService = Depends(get_auction_service),
):
    """Create an artwork owned by the requester; it waits for admin approval."""
    return service.create_artwork(
        artist_id=requester.id,
        title=payload.title,
        description=payload.description,
        image_url=payload.image_url,
        starting_price=payload.starting_price,
    )


@router.get("", response_model=list[ArtworkResponse])
def list_artworks(
    status: Optional[str] = None,
    artist_id: Optional[int] = None,
    service: AuctionService = Depends(get_auction_service),
):
    return service.list_artworks(status=status, artist_id=artist_id)


@router.get("/recent", response_model=list[ArtworkResponse])
def recent_artworks(service: AuctionService = Depends(get_auction_service)):
    return service.list_artworks(limit=RECENT_LIMIT)


@router.get("/{artwork_id}", response_model=ArtworkResponse)
def get_artwork(artwork_id: int, service: AuctionService = Depends(get_auction_service)):
    return service.get_artwork(artwork_id)


@router.post("/{artwork_id}/auction", response_model=ArtworkResponse)
def start_auction(
    artwork_id: int,
    payload: StartAuctionBody,
    requester: Requester = Depends(get_requester),
    service: AuctionService = Depends(get_auction_service),
):
    """Start (or restart an expired) auction for duration_hours from now."""
    return service.start_auction(artwork_id, requester.id, payload.duration_hours)


@router.post("/{artwork_id}/end", response_model=ArtworkResponse)
def end_auction(
    artwork_id: int,
    requester: Requester = Depends(get_requester),
    service: AuctionService = Depends(get_auction_service),
):
    """Artist ends the auction early; the highest ledger bid wins."""
    return service.end_auction(artwork_id, requester.id)


@router.put("/{artwork_id}", response_model=ArtworkResponse)
def update_artwork(
    artwork_id: int,
    payload: ArtworkUpdate,
    requester: Requester = Depends(get_requester),
    service: AuctionService = Depends(get_auction_service),
):
    """Artist edits title/description/image while the artwork is waiting or pending."""
    return service.update_artwork(
        artwork_id,
        requester.id,
        title=payload.title,
        description=payload.description,
        image_url=payload.image_url,
    )


@router.delete("/{artwork_id}", status_code=204)
def delete_artwork(
    artwork_id: int,
    requester: Requester = Depends(get_requester),
    service: AuctionService = Depends(get_auction_service),
):
    service.delete_artwork(artwork_id, requester.id)
    return Response(status_code=204)
