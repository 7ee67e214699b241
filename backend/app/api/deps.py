"""Shared request dependencies: requester identity (from the auth gateway) and services."""
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.auction_service import AuctionService
from app.services.errors import Forbidden
from app.services.notification_service import NotificationService

ROLES = ("buyer", "artist", "admin")


@dataclass
class Requester:
    id: int
    role: str = "buyer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_requester(
    x_user_id: int | None = Header(None, alias="X-User-Id"),
    x_user_role: str | None = Header(None, alias="X-User-Role"),
) -> Requester:
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    role = (x_user_role or "buyer").strip().lower()
    if role not in ROLES:
        raise HTTPException(status_code=400, detail=f"Unknown role: {x_user_role}")
    return Requester(id=x_user_id, role=role)


def require_admin(requester: Requester = Depends(get_requester)) -> Requester:
    if not requester.is_admin:
        raise Forbidden("Admin access required")
    return requester


def get_broadcaster(request: Request):
    return request.app.state.broadcaster


def get_auction_service(db: Session = Depends(get_db), broadcaster=Depends(get_broadcaster)) -> AuctionService:
    return AuctionService(db, broadcaster)


def get_notification_service(db: Session = Depends(get_db), broadcaster=Depends(get_broadcaster)) -> NotificationService:
    return NotificationService(db, broadcaster)
