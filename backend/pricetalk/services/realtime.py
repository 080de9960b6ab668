"""
WebSocket relay: connection registry, rooms and broadcasting.

Messages are JSON frames of the form {"type", "payload", "room"?}. With
Redis fan-out enabled, room broadcasts are published on
"pricetalk:ws:<room>" and every instance relays them to its own sockets.
"""
import asyncio
import json
import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from fastapi import WebSocket
from redis.exceptions import RedisError

from pricetalk.config import get_settings
from pricetalk.database.connections import get_redis_client

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "pricetalk:ws:"
PRICES_ROOM = "prices"
MACRO_ROOM = "macro"

MOCK_PRICE_SYMBOL = "EURUSD"
MOCK_PRICE_BASE = 1.0892
MOCK_MACRO_CURRENCIES = ["USD", "EUR", "GBP", "JPY"]
MOCK_MACRO_PROBABILITY = 0.1


def encode(message: dict) -> str:
    """JSON-encode a frame; datetimes become ISO strings."""
    return json.dumps(
        message,
        default=lambda o: o.isoformat() if isinstance(o, datetime) else str(o),
    )


def frame(type_: str, payload: Optional[dict] = None, room: Optional[str] = None) -> dict:
    message = {"type": type_, "payload": payload or {}}
    if room is not None:
        message["room"] = room
    return message


@dataclass
class Connection:
    """One open socket and what it is allowed to do."""
    websocket: WebSocket
    conn_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    user_id: Optional[str] = None
    username: Optional[str] = None
    level: Optional[int] = None
    rooms: set[str] = field(default_factory=set)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


class ConnectionManager:
    """
    Manages active WebSocket connections and their rooms.
    """

    def __init__(self):
        self.connections: dict[str, Connection] = {}

    async def connect(self, websocket: WebSocket) -> Connection:
        """Accept a socket, register it and greet it."""
        await websocket.accept()
        conn = Connection(websocket=websocket)
        self.connections[conn.conn_id] = conn
        await self.send(conn, frame("welcome", {"message": "Connected to PriceTalk WebSocket"}))
        logger.info("WebSocket %s connected (%d open)", conn.conn_id, len(self.connections))
        return conn

    def disconnect(self, conn_id: str) -> None:
        if self.connections.pop(conn_id, None) is not None:
            logger.info("WebSocket %s disconnected (%d open)", conn_id, len(self.connections))

    def join(self, conn: Connection, room: str) -> None:
        conn.rooms.add(room)

    def leave(self, conn: Connection, room: str) -> None:
        conn.rooms.discard(room)

    def room_members(self, room: str) -> list[Connection]:
        return [c for c in self.connections.values() if room in c.rooms]

    async def send(self, conn: Connection, message: dict) -> bool:
        """Send to one socket, dropping it if the send fails."""
        try:
            await conn.websocket.send_text(encode(message))
            return True
        except Exception as e:
            logger.warning("Send to WebSocket %s failed, dropping it: %s", conn.conn_id, e)
            self.disconnect(conn.conn_id)
            return False

    # ==================== Broadcast ====================

    async def broadcast(self, room: str, message: dict, exclude: Optional[str] = None) -> None:
        """
        Deliver a message to every connection in a room.

        Args:
            room: Target room
            message: Frame to send
            exclude: conn_id that should not receive it (usually the sender)
        """
        if get_settings().ws_redis_fanout:
            try:
                await self.publish(room, message, exclude)
                return
            except RedisError as e:
                logger.warning("Redis fan-out unavailable, delivering locally: %s", e)
        await self.deliver_local(room, message, exclude)

    async def deliver_local(self, room: str, message: dict, exclude: Optional[str] = None) -> int:
        sent = 0
        for conn in self.room_members(room):
            if conn.conn_id == exclude:
                continue
            if await self.send(conn, message):
                sent += 1
        return sent

    async def broadcast_to_all(self, message: dict, exclude: Optional[str] = None) -> None:
        for conn in list(self.connections.values()):
            if conn.conn_id != exclude:
                await self.send(conn, message)

    async def publish(self, room: str, message: dict, exclude: Optional[str] = None) -> None:
        redis = await get_redis_client()
        envelope = {"room": room, "message": message, "exclude": exclude}
        await redis.publish(f"{CHANNEL_PREFIX}{room}", encode(envelope))


# Global connection manager
manager = ConnectionManager()


# ==================== Background tasks ====================

def mock_price_update(rng: random.Random) -> dict:
    return frame("price_update", {
        "symbol": MOCK_PRICE_SYMBOL,
        "price": MOCK_PRICE_BASE + rng.uniform(-0.005, 0.005),
        "change": rng.uniform(-0.001, 0.001),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


def mock_macro_update(rng: random.Random) -> dict:
    return frame("macro_update", {
        "currency": rng.choice(MOCK_MACRO_CURRENCIES),
        "heat_score": rng.uniform(-5, 5),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


async def mock_feed_tick(conn_manager: ConnectionManager, rng: random.Random) -> None:
    """One round of the mock feed: a price tick and occasionally a macro tick."""
    await conn_manager.broadcast(PRICES_ROOM, mock_price_update(rng))
    if rng.random() < MOCK_MACRO_PROBABILITY:
        await conn_manager.broadcast(MACRO_ROOM, mock_macro_update(rng))


async def run_mock_feed(
    conn_manager: ConnectionManager,
    interval: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> None:
    """Broadcast mock price/macro data until cancelled."""
    interval = interval if interval is not None else get_settings().ws_broadcast_interval_seconds
    rng = rng or random.Random()
    logger.info("Mock feed started (every %.1fs)", interval)
    try:
        while True:
            await asyncio.sleep(interval)
            await mock_feed_tick(conn_manager, rng)
    except asyncio.CancelledError:
        logger.info("Mock feed stopped")
        raise


async def relay_published(conn_manager: ConnectionManager, data) -> None:
    """Deliver one message received from the fan-out channel to local sockets."""
    try:
        envelope = json.loads(data)
    except (TypeError, ValueError):
        logger.warning("Dropping malformed fan-out message")
        return
    await conn_manager.deliver_local(
        envelope["room"], envelope["message"], envelope.get("exclude")
    )


async def run_redis_fanout(conn_manager: ConnectionManager) -> None:
    """Relay room messages published by any instance until cancelled."""
    redis = await get_redis_client()
    pubsub = redis.pubsub()
    await pubsub.psubscribe(f"{CHANNEL_PREFIX}*")
    logger.info("Redis fan-out listening on %s*", CHANNEL_PREFIX)
    try:
        async for message in pubsub.listen():
            if message.get("type") == "pmessage":
                await relay_published(conn_manager, message["data"])
    finally:
        await pubsub.punsubscribe()
        await pubsub.close()
