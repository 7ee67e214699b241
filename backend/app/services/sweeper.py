"""Background task that ends overdue auctions on a fixed cadence."""
import asyncio
import logging
import os
from datetime import datetime
from typing import Callable, Optional

from app.models.artwork import Artwork, ArtworkStatus
from app.models.base import utcnow
from app.services.auction_service import AuctionService

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = float(os.getenv("SWEEP_INTERVAL_SECONDS", "60"))


class ExpirySweeper:
    """
    Each tick re-queries active auctions whose end time has passed and runs the
    same resolution used by reads. Nothing is cached between ticks; a failure on
    one artwork is logged and the next tick retries it.
    """

    def __init__(
        self,
        session_factory: Callable,
        broadcaster=None,
        interval_seconds: float = SWEEP_INTERVAL_SECONDS,
        service_factory: Callable = AuctionService,
    ):
        self.session_factory = session_factory
        self.broadcaster = broadcaster
        self.interval_seconds = interval_seconds
        self.service_factory = service_factory
        self._task: Optional[asyncio.Task] = None

    def due_artwork_ids(self, now: datetime) -> list[int]:
        db = self.session_factory()
        try:
            rows = (
                db.query(Artwork.id)
                .filter(Artwork.status == ArtworkStatus.ACTIVE, Artwork.auction_end_time < now)
                .order_by(Artwork.auction_end_time)
                .all()
            )
            return [row[0] for row in rows]
        finally:
            db.close()

    def sweep_once(self, now: Optional[datetime] = None) -> list[int]:
        """Resolve every overdue auction; returns the ids this run resolved."""
        now = now or utcnow()
        resolved = []
        for artwork_id in self.due_artwork_ids(now):
            db = self.session_factory()
            try:
                service = self.service_factory(db, self.broadcaster)
                if service.resolve_if_expired(artwork_id, now=now) is not None:
                    resolved.append(artwork_id)
            except Exception:
                db.rollback()
                logger.exception("Sweeper could not resolve artwork %s", artwork_id)
            finally:
                db.close()
        if resolved:
            logger.info("Sweeper resolved %d auction(s): %s", len(resolved), resolved)
        return resolved

    async def _run(self) -> None:
        logger.info("Expiry sweeper running every %ss", self.interval_seconds)
        while True:
            try:
                await asyncio.to_thread(self.sweep_once)
            except Exception:
                logger.exception("Sweeper tick failed")
            await asyncio.sleep(self.interval_seconds)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiry sweeper stopped")
