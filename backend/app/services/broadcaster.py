"""
Real-time event fan-out to WebSocket subscribers.

Subscribers join logical rooms ("auction:<id>", "user:<id>"). publish() may be
called from any thread: each send is scheduled on the subscriber's own event
loop and never awaited by the caller, so a slow or broken socket cannot fail
or delay the state change that produced the event.
"""
import asyncio
import logging
import threading
from collections import defaultdict
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

AUCTION_STARTED = "auction-started"
BID_PLACED = "bid-placed"
AUCTION_ENDED = "auction-ended"
NOTIFICATION = "notification"


def auction_room(artwork_id: int) -> str:
    return f"auction:{artwork_id}"


def user_room(user_id: int) -> str:
    return f"user:{user_id}"


class Subscriber:
    """One connected socket plus the loop its sends must run on."""

    def __init__(self, websocket: Any, loop: asyncio.AbstractEventLoop):
        self.websocket = websocket
        self.loop = loop


class EventBroadcaster:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: set[Subscriber] = set()
        self._rooms: dict[str, set[Subscriber]] = defaultdict(set)

    async def connect(self, websocket: Any) -> Subscriber:
        subscriber = Subscriber(websocket, asyncio.get_running_loop())
        with self._lock:
            self._subscribers.add(subscriber)
        return subscriber

    def disconnect(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.discard(subscriber)
            for room in list(self._rooms):
                self._rooms[room].discard(subscriber)
                if not self._rooms[room]:
                    del self._rooms[room]

    def join(self, subscriber: Subscriber, room: str) -> None:
        with self._lock:
            if subscriber in self._subscribers:
                self._rooms[room].add(subscriber)

    def leave(self, subscriber: Subscriber, room: str) -> None:
        with self._lock:
            members = self._rooms.get(room)
            if members is not None:
                members.discard(subscriber)
                if not members:
                    del self._rooms[room]

    def room_size(self, room: str) -> int:
        with self._lock:
            return len(self._rooms.get(room, ()))

    def publish(self, event: str, data: dict, room: Optional[str] = None) -> int:
        """
        Fire-and-forget delivery of {"event", "data"} to a room, or to every
        subscriber when room is None. Returns how many sends were scheduled.
        """
        try:
            message = {"event": event, "data": jsonable_encoder(data)}
            with self._lock:
                if room is None:
                    targets = list(self._subscribers)
                else:
                    targets = list(self._rooms.get(room, ()))
            scheduled = 0
            for subscriber in targets:
                if self._schedule_send(subscriber, message):
                    scheduled += 1
            logger.debug("publish %s room=%s scheduled=%s", event, room, scheduled)
            return scheduled
        except Exception as e:
            logger.warning("Broadcast of %s failed: %s", event, e)
            return 0

    def _schedule_send(self, subscriber: Subscriber, message: dict) -> bool:
        send = subscriber.websocket.send_json(message)
        try:
            future = asyncio.run_coroutine_threadsafe(send, subscriber.loop)
        except RuntimeError as e:
            # loop already closed; the socket is gone
            send.close()
            logger.info("Dropping subscriber with closed loop: %s", e)
            self.disconnect(subscriber)
            return False
        future.add_done_callback(lambda f: self._after_send(subscriber, f))
        return True

    def _after_send(self, subscriber: Subscriber, future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning("Send to subscriber failed, dropping it: %s", error)
            self.disconnect(subscriber)
