"""
Auction lifecycle: approval, auction start/end, bid acceptance and expiry.

Every status or price change is one conditional UPDATE whose WHERE clause
restates the precondition (status, window, price). The affected row count
decides the outcome, so concurrent bids, manual ends, sweeper runs and lazy
checks on read can race without double-applying a transition.

Events and notifications go out only after the transition is committed and
never change its result.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, exists, update
from sqlalchemy.orm import Session

from app.models.artwork import Artwork, ArtworkStatus
from app.models.base import utcnow
from app.models.bid import Bid
from app.models.notification import Notification, NotificationType
from app.services import bid_ledger
from app.services.broadcaster import AUCTION_ENDED, AUCTION_STARTED, BID_PLACED, auction_room
from app.services.errors import Forbidden, InvalidBid, InvalidInput, InvalidState, NotFound
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

# manual end retries when bids land between reading the ledger and writing the result
_RESOLVE_ATTEMPTS = 5


def _positive_number(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"Valid {name} is required")
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise InvalidInput(f"Valid {name} is required")
    return value


def _is_overdue(artwork: Artwork, now: datetime) -> bool:
    return (
        artwork.status == ArtworkStatus.ACTIVE
        and artwork.auction_end_time is not None
        and now > artwork.auction_end_time
    )


class AuctionService:
    def __init__(self, db: Session, broadcaster=None, notifier: Optional[NotificationService] = None):
        self.db = db
        self.broadcaster = broadcaster
        self.notifier = notifier if notifier is not None else NotificationService(db, broadcaster)

    # -- reads -------------------------------------------------------------

    def _load(self, artwork_id: int) -> Artwork:
        artwork = self.db.get(Artwork, artwork_id)
        if artwork is None:
            raise NotFound("Artwork not found")
        return artwork

    def get_artwork(self, artwork_id: int, now: Optional[datetime] = None) -> Artwork:
        """Fetch an artwork, resolving its auction first if it is overdue."""
        artwork = self._load(artwork_id)
        self.resolve_if_expired(artwork_id, now=now)
        return artwork

    def list_artworks(
        self,
        status: Optional[str] = None,
        artist_id: Optional[int] = None,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[Artwork]:
        now = now or utcnow()
        query = self.db.query(Artwork)
        if status is not None:
            query = query.filter(Artwork.status == status)
        if artist_id is not None:
            query = query.filter(Artwork.artist_id == artist_id)
        query = query.order_by(Artwork.created_at.desc(), Artwork.id.desc())
        if limit is not None:
            query = query.limit(limit)
        artworks = query.all()
        overdue = [a.id for a in artworks if _is_overdue(a, now)]
        if not overdue:
            return artworks
        for artwork_id in overdue:
            self.resolve_if_expired(artwork_id, now=now)
        if status is None:
            return artworks
        # resolved auctions no longer match an explicit status filter
        return [a for a in artworks if a.status == status]

    # -- creation and approval ------------------------------------------------

    def create_artwork(
        self,
        artist_id: int,
        title: str,
        starting_price,
        description: str = "",
        image_url: Optional[str] = None,
    ) -> Artwork:
        if not title or not str(title).strip():
            raise InvalidInput("Title is required")
        price = _positive_number(starting_price, "starting price")
        artwork = Artwork(
            title=str(title).strip(),
            description=description or "",
            image_url=image_url,
            artist_id=artist_id,
            starting_price=price,
            current_bid=None,
            total_bids=0,
            status=ArtworkStatus.WAITING,
        )
        self.db.add(artwork)
        self.db.commit()
        self.db.refresh(artwork)
        logger.info("Artwork %s created by artist %s", artwork.id, artist_id)
        return artwork

    def _review(self, artwork_id: int, new_status: str, reason: Optional[str], now: datetime) -> Artwork:
        artwork = self._load(artwork_id)
        values = {"status": new_status, "updated_at": now}
        if new_status == ArtworkStatus.REJECTED:
            values["rejection_reason"] = (reason or "").strip() or None
        result = self.db.execute(
            update(Artwork)
            .where(Artwork.id == artwork_id, Artwork.status == ArtworkStatus.WAITING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            self.db.refresh(artwork)
            raise InvalidState(f"Artwork is {artwork.status}; only waiting artworks can be reviewed")
        self.db.commit()
        self.db.refresh(artwork)
        logger.info("Artwork %s moved to %s", artwork_id, new_status)
        return artwork

    def approve(self, artwork_id: int, now: Optional[datetime] = None) -> Artwork:
        artwork = self._review(artwork_id, ArtworkStatus.PENDING, None, now or utcnow())
        self._notify(
            NotificationType.ARTWORK_APPROVED,
            artwork.artist_id,
            {"artwork_id": artwork.id, "title": artwork.title},
        )
        return artwork

    def reject(self, artwork_id: int, reason: Optional[str] = None, now: Optional[datetime] = None) -> Artwork:
        artwork = self._review(artwork_id, ArtworkStatus.REJECTED, reason, now or utcnow())
        self._notify(
            NotificationType.ARTWORK_REJECTED,
            artwork.artist_id,
            {"artwork_id": artwork.id, "title": artwork.title, "reason": artwork.rejection_reason},
        )
        return artwork

    # -- owner edits ------------------------------------------------------------

    def update_artwork(
        self,
        artwork_id: int,
        requester_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Artwork:
        """Owner edits title/description/image while the artwork has not gone to auction."""
        artwork = self._load(artwork_id)
        if artwork.artist_id != requester_id:
            raise Forbidden("Only the artist can edit this artwork")
        values = {"updated_at": now or utcnow()}
        if title is not None:
            if not title.strip():
                raise InvalidInput("Title is required")
            values["title"] = title.strip()
        if description is not None:
            values["description"] = description
        if image_url is not None:
            values["image_url"] = image_url
        result = self.db.execute(
            update(Artwork)
            .where(Artwork.id == artwork_id, Artwork.status.in_(ArtworkStatus.EDITABLE))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            self.db.refresh(artwork)
            raise InvalidState(f"Artwork cannot be edited while {artwork.status}")
        self.db.commit()
        self.db.refresh(artwork)
        logger.info("Artwork %s edited by artist %s", artwork_id, requester_id)
        return artwork

    def delete_artwork(self, artwork_id: int, requester_id: int) -> None:
        """Owner withdraws an artwork that never took bids."""
        artwork = self._load(artwork_id)
        if artwork.artist_id != requester_id:
            raise Forbidden("Only the artist can delete this artwork")
        # notifications outlive the artwork they mention
        self.db.execute(
            update(Notification)
            .where(Notification.artwork_id == artwork_id)
            .values(artwork_id=None)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(
            delete(Artwork)
            .where(
                Artwork.id == artwork_id,
                Artwork.status.in_(ArtworkStatus.DELETABLE),
                ~exists().where(Bid.artwork_id == Artwork.id),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            self.db.refresh(artwork)
            raise InvalidState(f"Artwork cannot be deleted while {artwork.status}")
        self.db.expunge(artwork)
        self.db.commit()
        logger.info("Artwork %s deleted by artist %s", artwork_id, requester_id)

    # -- auction lifecycle ----------------------------------------------------

    def start_auction(self, artwork_id: int, requester_id: int, duration_hours, now: Optional[datetime] = None) -> Artwork:
        duration = _positive_number(duration_hours, "duration")
        now = now or utcnow()
        try:
            end_time = now + timedelta(hours=duration)
        except OverflowError:
            raise InvalidInput("Duration is too long")
        artwork = self._load(artwork_id)
        if artwork.artist_id != requester_id:
            raise Forbidden("Only the artist can start an auction")
        if artwork.status == ArtworkStatus.ACTIVE:
            raise InvalidState("Artwork is already in an active auction")
        if artwork.status not in ArtworkStatus.STARTABLE:
            raise InvalidState(f"Artwork cannot start auction while {artwork.status}")

        result = self.db.execute(
            update(Artwork)
            .where(Artwork.id == artwork_id, Artwork.status.in_(ArtworkStatus.STARTABLE))
            .values(
                status=ArtworkStatus.ACTIVE,
                auction_start_time=now,
                auction_end_time=end_time,
                current_bid=Artwork.starting_price,
                total_bids=0,
                winner_id=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            self.db.refresh(artwork)
            raise InvalidState(f"Artwork cannot start auction while {artwork.status}")
        self.db.commit()
        self.db.refresh(artwork)
        logger.info("Auction started for artwork %s, ends %s", artwork_id, artwork.auction_end_time)

        self._publish(
            AUCTION_STARTED,
            {
                "artworkId": artwork.id,
                "title": artwork.title,
                "startTime": artwork.auction_start_time,
                "endTime": artwork.auction_end_time,
                "startingPrice": artwork.starting_price,
            },
        )
        self._notify(
            NotificationType.AUCTION_STARTED,
            artwork.artist_id,
            {"artwork_id": artwork.id, "title": artwork.title},
        )
        return artwork

    def end_auction(self, artwork_id: int, requester_id: int, now: Optional[datetime] = None) -> Artwork:
        """Owner ends the auction; the end time becomes now."""
        now = now or utcnow()
        artwork = self._load(artwork_id)
        if artwork.artist_id != requester_id:
            raise Forbidden("Only the artist can end the auction")
        if artwork.status != ArtworkStatus.ACTIVE:
            raise InvalidState("Artwork is not in an active auction")
        if _is_overdue(artwork, now):
            # already past its scheduled end: resolve as the sweeper would
            resolved = self._resolve(artwork, now, manual=False)
        else:
            resolved = self._resolve(artwork, now, manual=True)
        if resolved is None:
            raise InvalidState("Artwork is not in an active auction")
        return resolved

    def resolve_if_expired(self, artwork_id: int, now: Optional[datetime] = None) -> Optional[Artwork]:
        """
        System-path end shared by the sweeper and reads. Returns the resolved
        artwork, or None when the auction is not active or not yet overdue
        (including when another caller resolved it first).
        """
        now = now or utcnow()
        artwork = self._load(artwork_id)
        if not _is_overdue(artwork, now):
            return None
        return self._resolve(artwork, now, manual=False)

    def _resolve(self, artwork: Artwork, now: datetime, manual: bool) -> Optional[Artwork]:
        for _ in range(_RESOLVE_ATTEMPTS):
            observed_total = artwork.total_bids
            top = bid_ledger.highest_for(self.db, artwork.id)
            values = {"updated_at": now}
            if top is not None:
                values.update(status=ArtworkStatus.SOLD, winner_id=top.bidder_id, current_bid=top.amount)
            else:
                values.update(status=ArtworkStatus.EXPIRED, winner_id=None)
            if manual:
                values["auction_end_time"] = now

            conditions = [
                Artwork.id == artwork.id,
                Artwork.status == ArtworkStatus.ACTIVE,
                Artwork.total_bids == observed_total,
            ]
            if not manual:
                conditions.append(Artwork.auction_end_time < now)
            result = self.db.execute(
                update(Artwork).where(*conditions).values(**values).execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                self.db.commit()
                self.db.refresh(artwork)
                logger.info(
                    "Auction for artwork %s ended as %s (winner=%s, final=%s, manual=%s)",
                    artwork.id, artwork.status, artwork.winner_id, artwork.current_bid, manual,
                )
                self._announce_end(artwork)
                return artwork

            self.db.rollback()
            self.db.refresh(artwork)
            if artwork.status != ArtworkStatus.ACTIVE or (not manual and not _is_overdue(artwork, now)):
                logger.debug("Artwork %s already resolved as %s", artwork.id, artwork.status)
                return None
            logger.info("Bids changed while ending auction for artwork %s; retrying", artwork.id)
        raise InvalidState("Auction is still receiving bids; try again")

    def _announce_end(self, artwork: Artwork) -> None:
        self._publish(
            AUCTION_ENDED,
            {
                "artworkId": artwork.id,
                "title": artwork.title,
                "status": artwork.status,
                "endTime": artwork.auction_end_time,
                "finalBid": artwork.current_bid,
                "hasBids": artwork.total_bids > 0,
                "winnerId": artwork.winner_id,
            },
        )
        payload = {
            "artwork_id": artwork.id,
            "title": artwork.title,
            "status": artwork.status,
            "amount": artwork.current_bid,
        }
        self._notify(NotificationType.AUCTION_ENDED, artwork.artist_id, payload)
        if artwork.winner_id is not None:
            self._notify(NotificationType.AUCTION_WON, artwork.winner_id, payload)

    # -- bidding ------------------------------------------------------------

    def place_bid(self, artwork_id: int, bidder_id: int, amount, now: Optional[datetime] = None) -> Bid:
        amount = _positive_number(amount, "bid amount")
        now = now or utcnow()
        artwork = self._load(artwork_id)
        self.resolve_if_expired(artwork_id, now=now)

        if artwork.artist_id == bidder_id:
            raise Forbidden("You cannot bid on your own artwork")
        if artwork.current_bid is not None and amount <= artwork.current_bid:
            raise InvalidBid(f"Bid must be higher than current bid of ${artwork.current_bid}")
        if artwork.status != ArtworkStatus.ACTIVE:
            raise InvalidState("This artwork is not in an active auction")
        if now < artwork.auction_start_time or now > artwork.auction_end_time:
            raise InvalidState("Auction is not accepting bids at this time")

        result = self.db.execute(
            update(Artwork)
            .where(
                Artwork.id == artwork_id,
                Artwork.status == ArtworkStatus.ACTIVE,
                Artwork.auction_start_time <= now,
                Artwork.auction_end_time >= now,
                Artwork.current_bid < amount,
            )
            .values(current_bid=amount, total_bids=Artwork.total_bids + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            self.db.refresh(artwork)
            if artwork.status != ArtworkStatus.ACTIVE or now > artwork.auction_end_time:
                self.resolve_if_expired(artwork_id, now=now)
                raise InvalidState("This artwork is not in an active auction")
            raise InvalidBid(f"Bid must be higher than current bid of ${artwork.current_bid}")

        # the row is locked by our update, so the ledger's leader is the previous one
        previous = bid_ledger.highest_for(self.db, artwork_id)
        previous_leader = previous.bidder_id if previous is not None else None
        bid = bid_ledger.insert(self.db, artwork_id, bidder_id, amount, created_at=now)
        self.db.commit()
        self.db.refresh(artwork)
        self.db.refresh(bid)
        logger.info("Bid %s of %s accepted on artwork %s from user %s", bid.id, amount, artwork_id, bidder_id)

        self._publish(
            BID_PLACED,
            {
                "artworkId": artwork_id,
                "bidId": bid.id,
                "amount": bid.amount,
                "bidder": {"id": bidder_id},
                "totalBids": artwork.total_bids,
                "timestamp": bid.created_at,
            },
            room=auction_room(artwork_id),
        )
        self._notify_bid(artwork, bid, previous_leader)
        return bid

    def _notify_bid(self, artwork: Artwork, bid: Bid, previous_leader: Optional[int]) -> None:
        payload = {"artwork_id": artwork.id, "bid_id": bid.id, "title": artwork.title, "amount": bid.amount}
        self._notify(NotificationType.BID_PLACED, artwork.artist_id, payload)
        excluded = {bid.bidder_id}
        if previous_leader is not None and previous_leader != bid.bidder_id:
            self._notify(NotificationType.OUTBID, previous_leader, payload)
            excluded.add(previous_leader)
        try:
            others = bid_ledger.distinct_bidders_for(self.db, artwork.id, excluding=excluded)
        except Exception:
            self.db.rollback()
            logger.exception("Could not load prior bidders for artwork %s", artwork.id)
            return
        for user_id in others:
            self._notify(NotificationType.NEW_BID, user_id, payload)

    def history(self, artwork_id: int, limit: int = 20) -> list[Bid]:
        self._load(artwork_id)
        return bid_ledger.history_for(self.db, artwork_id, limit=limit)

    # -- side effects -----------------------------------------------------------

    def _publish(self, event: str, data: dict, room: Optional[str] = None) -> None:
        if self.broadcaster is None:
            return
        try:
            self.broadcaster.publish(event, data, room=room)
        except Exception as e:
            logger.warning("Could not broadcast %s for artwork %s: %s", event, data.get("artworkId"), e)

    def _notify(self, kind: str, recipient_id: int, payload: dict) -> None:
        try:
            self.notifier.notify(kind, recipient_id, payload)
        except Exception:
            logger.exception("Notification %s to user %s failed", kind, recipient_id)
