import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.database import engine, SessionLocal
from app.models.base import Base
import app.models  # noqa: F401 - register Artwork, Bid, Notification for create_all
from app.api.endpoints import admin, artworks, bids, events, notifications
from app.services.broadcaster import EventBroadcaster
from app.services.errors import AuctionError
from app.services.sweeper import ExpirySweeper

logger = logging.getLogger(__name__)

SWEEPER_ENABLED = os.getenv("SWEEPER_ENABLED", "true").strip().lower() in ("1", "true", "yes")
CLIENT_ORIGIN = os.getenv("CLIENT_ORIGIN", "http://localhost:3000")


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    sweeper = None
    if SWEEPER_ENABLED:
        sweeper = ExpirySweeper(SessionLocal, app.state.broadcaster)
        sweeper.start()
    app.state.sweeper = sweeper
    yield
    if sweeper is not None:
        await sweeper.stop()


app = FastAPI(title="Art Auction API", version="0.1.0", lifespan=lifespan)
app.state.broadcaster = EventBroadcaster()

app.add_middleware(
    CORSMiddleware,
    allow_origins=[CLIENT_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuctionError)
async def auction_error_handler(request: Request, exc: AuctionError):
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, type(exc).__name__)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


app.include_router(artworks.router)
app.include_router(bids.router)
app.include_router(admin.router)
app.include_router(notifications.router)
app.include_router(events.router)


@app.get("/health")
def health():
    """Health check endpoint for load balancers and readiness probes."""
    sweeper = getattr(app.state, "sweeper", None)
    return {
        "status": "ok",
        "service": "art-auction-backend",
        "sweeper_running": bool(sweeper and sweeper.running),
    }
