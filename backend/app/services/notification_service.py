"""Persist user notifications for auction events and push them to the recipient's room."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.models.notification import Notification, NotificationType
from app.services.broadcaster import NOTIFICATION, user_room

logger = logging.getLogger(__name__)

_TEMPLATES = {
    NotificationType.BID_PLACED: 'A bid of ${amount} was placed on your artwork "{title}"',
    NotificationType.OUTBID: 'You\'ve been outbid on "{title}". The new highest bid is ${amount}',
    NotificationType.NEW_BID: 'A new bid of ${amount} was placed on "{title}"',
    NotificationType.AUCTION_STARTED: 'The auction for "{title}" has started',
    NotificationType.AUCTION_ENDED: 'Your auction for "{title}" has ended ({status})',
    NotificationType.AUCTION_WON: 'Congratulations! You won the auction for "{title}" with a bid of ${amount}',
    NotificationType.ARTWORK_APPROVED: 'Your artwork "{title}" was approved and can go to auction',
    NotificationType.ARTWORK_REJECTED: 'Your artwork "{title}" was rejected{reason_suffix}',
}


def _format_amount(value) -> str:
    if value is None:
        return "-"
    value = float(value)
    return f"{value:,.0f}" if value.is_integer() else f"{value:,.2f}"


def format_message(kind: str, payload: dict) -> str:
    template = _TEMPLATES.get(kind)
    if template is None:
        raise ValueError(f"Unknown notification kind: {kind}")
    reason = (payload.get("reason") or "").strip()
    return template.format(
        title=payload.get("title") or "artwork",
        amount=_format_amount(payload.get("amount")),
        status=payload.get("status") or "",
        reason_suffix=f": {reason}" if reason else "",
    )


class NotificationService:
    def __init__(self, db: Session, broadcaster=None):
        self.db = db
        self.broadcaster = broadcaster

    def notify(self, kind: str, recipient_id: int, payload: dict) -> Optional[Notification]:
        """Store and push one notification. Errors are logged, never raised."""
        try:
            notification = Notification(
                recipient_id=recipient_id,
                type=kind,
                message=format_message(kind, payload),
                artwork_id=payload.get("artwork_id"),
                bid_id=payload.get("bid_id"),
                is_read=False,
            )
            self.db.add(notification)
            self.db.commit()
            self.db.refresh(notification)
        except Exception:
            self.db.rollback()
            logger.exception("Could not store %s notification for user %s", kind, recipient_id)
            return None
        if self.broadcaster is not None:
            try:
                self.broadcaster.publish(
                    NOTIFICATION,
                    {
                        "id": notification.id,
                        "type": notification.type,
                        "message": notification.message,
                        "artworkId": notification.artwork_id,
                        "createdAt": notification.created_at,
                    },
                    room=user_room(recipient_id),
                )
            except Exception as e:
                logger.warning("Could not push notification %s: %s", notification.id, e)
        return notification

    def list_for(self, recipient_id: int, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        query = self.db.query(Notification).filter(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    def mark_read(self, notification_id: int, recipient_id: int) -> Optional[Notification]:
        """Mark one notification read. Returns None if it does not belong to the recipient."""
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.recipient_id == recipient_id)
            .first()
        )
        if notification is None:
            return None
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self, recipient_id: int) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self.db.commit()
        return updated
