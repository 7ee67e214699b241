from app.models.artwork import Artwork, ArtworkStatus
from app.models.bid import Bid
from app.models.notification import Notification, NotificationType

__all__ = ["Artwork", "ArtworkStatus", "Bid", "Notification", "NotificationType"]
