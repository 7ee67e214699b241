"""Admin review and dashboard endpoints."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.deps import Requester, get_auction_service, require_admin
from app.database import get_db
from app.models.artwork import Artwork, ArtworkStatus
from app.schemas.artwork import ArtworkResponse, AuctionStats, RejectBody
from app.services.auction_service import AuctionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/artworks/pending", response_model=list[ArtworkResponse])
def pending_review(
    _: Requester = Depends(require_admin),
    service: AuctionService = Depends(get_auction_service),
):
    """Artworks waiting for approval, newest first."""
    return service.list_artworks(status=ArtworkStatus.WAITING)


@router.post("/artworks/{artwork_id}/approve", response_model=ArtworkResponse)
def approve_artwork(
    artwork_id: int,
    admin: Requester = Depends(require_admin),
    service: AuctionService = Depends(get_auction_service),
):
    artwork = service.approve(artwork_id)
    logger.info("Artwork %s approved by admin %s", artwork_id, admin.id)
    return artwork


@router.post("/artworks/{artwork_id}/reject", response_model=ArtworkResponse)
def reject_artwork(
    artwork_id: int,
    payload: RejectBody | None = None,
    admin: Requester = Depends(require_admin),
    service: AuctionService = Depends(get_auction_service),
):
    artwork = service.reject(artwork_id, reason=payload.reason if payload else None)
    logger.info("Artwork %s rejected by admin %s", artwork_id, admin.id)
    return artwork


@router.get("/stats", response_model=AuctionStats)
def auction_stats(_: Requester = Depends(require_admin), db: Session = Depends(get_db)):
    counts = {status: 0 for status in ArtworkStatus.ALL}
    for status, count in db.query(Artwork.status, func.count(Artwork.id)).group_by(Artwork.status).all():
        counts[status] = count
    sold_value = (
        db.query(func.coalesce(func.sum(Artwork.current_bid), 0.0))
        .filter(Artwork.status == ArtworkStatus.SOLD)
        .scalar()
    )
    return AuctionStats(
        artworks_by_status=counts,
        active_auctions=counts[ArtworkStatus.ACTIVE],
        total_sold_value=float(sold_value or 0),
    )
