"""
WebSocket router for chat rooms and live price/macro updates.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from jose import JWTError

from pricetalk.core.security import decode_token
from pricetalk.database.connections import get_mongo_client
from pricetalk.database.databases import auth_db
from pricetalk.models.user import User
from pricetalk.services.auth_service import AuthService
from pricetalk.services.community_service import CommunityService
from pricetalk.services.realtime import (
    MACRO_ROOM,
    PRICES_ROOM,
    Connection,
    frame,
    manager,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


async def validate_token(token: Optional[str]) -> Optional[User]:
    """
    Validate JWT token and return the user if it exists and is active.

    Returns:
        User if the token is valid, None otherwise
    """
    if not token:
        return None
    try:
        payload = decode_token(token)
    except JWTError:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    client = await get_mongo_client()
    user = await AuthService(client[auth_db.DB_NAME]).get_user_by_id(user_id)
    if not user or not user.is_active:
        return None
    return user


async def error(conn: Connection, message: str) -> None:
    await manager.send(conn, frame("error", {"message": message}))


# ==================== Message handlers ====================


async def handle_auth(conn: Connection, payload: dict, room: Optional[str]) -> None:
    user = await validate_token(payload.get("token"))
    if user is None:
        await manager.send(conn, frame("auth_error", {"message": "Invalid token"}))
        return

    conn.user_id = user.id
    conn.username = user.username
    conn.level = user.level
    await manager.send(conn, frame("auth_success", {
        "userId": user.id,
        "username": user.username,
        "level": user.level,
    }))
    logger.info("WebSocket %s authenticated as %s", conn.conn_id, user.username)


async def handle_join_room(conn: Connection, payload: dict, room: Optional[str]) -> None:
    if not conn.is_authenticated:
        await error(conn, "Authentication required")
        return
    target = payload.get("room")
    if not isinstance(target, str) or not target:
        await error(conn, "Room required")
        return

    manager.join(conn, target)
    await manager.send(conn, frame("room_joined", {"room": target}))
    await manager.broadcast(
        target,
        frame("user_joined", {"username": conn.username, "room": target}),
        exclude=conn.conn_id,
    )


async def handle_leave_room(conn: Connection, payload: dict, room: Optional[str]) -> None:
    target = payload.get("room")
    if not isinstance(target, str) or not target:
        await error(conn, "Room required")
        return

    manager.leave(conn, target)
    await manager.send(conn, frame("room_left", {"room": target}))
    await manager.broadcast(
        target,
        frame("user_left", {"username": conn.username, "room": target}),
        exclude=conn.conn_id,
    )


async def handle_chat_message(conn: Connection, payload: dict, room: Optional[str]) -> None:
    if not conn.is_authenticated or not isinstance(room, str) or not room:
        await error(conn, "Authentication and room required")
        return

    content = payload.get("content")
    if not isinstance(content, str) or not content.strip():
        await error(conn, "Message content required")
        return

    try:
        community = CommunityService(await get_mongo_client())
        message = await community.post_message(room, conn.user_id, content)
    except ValueError as e:
        await error(conn, str(e))
        return

    await manager.broadcast(room, frame("chat_message", message, room=room))


async def handle_subscribe_prices(conn: Connection, payload: dict, room: Optional[str]) -> None:
    if not conn.is_authenticated:
        await error(conn, "Authentication required")
        return
    manager.join(conn, PRICES_ROOM)
    await manager.send(conn, frame("price_subscription_active", {"symbols": payload.get("symbols", [])}))


async def handle_subscribe_macro(conn: Connection, payload: dict, room: Optional[str]) -> None:
    if not conn.is_authenticated:
        await error(conn, "Authentication required")
        return
    manager.join(conn, MACRO_ROOM)
    await manager.send(
        conn, frame("macro_subscription_active", {"currencies": payload.get("currencies", [])})
    )


HANDLERS = {
    "auth": handle_auth,
    "join_room": handle_join_room,
    "leave_room": handle_leave_room,
    "chat_message": handle_chat_message,
    "subscribe_prices": handle_subscribe_prices,
    "subscribe_macro": handle_subscribe_macro,
}


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for chat and live data.

    **Messages from client** (`{"type", "payload", "room"?}`):
    ```json
    {"type": "auth", "payload": {"token": "..."}}
    {"type": "join_room", "payload": {"room": "general"}}
    {"type": "leave_room", "payload": {"room": "general"}}
    {"type": "chat_message", "payload": {"content": "hi"}, "room": "general"}
    {"type": "subscribe_prices", "payload": {"symbols": ["EURUSD"]}}
    {"type": "subscribe_macro", "payload": {"currencies": ["USD"]}}
    ```

    **Messages from server**: welcome, auth_success, auth_error, room_joined,
    room_left, user_joined, user_left, chat_message, price_update,
    macro_update, price_subscription_active, macro_subscription_active, error.
    """
    conn = await manager.connect(websocket)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
                if not isinstance(message, dict):
                    raise ValueError("frame must be an object")
            except ValueError:
                await error(conn, "Invalid message format")
                continue

            handler = HANDLERS.get(message.get("type"))
            if handler is None:
                await error(conn, "Unknown message type")
                continue

            payload = message.get("payload")
            try:
                await handler(conn, payload if isinstance(payload, dict) else {}, message.get("room"))
            except WebSocketDisconnect:
                raise
            except Exception:
                logger.exception("WebSocket %s failed handling %s", conn.conn_id, message.get("type"))
                await error(conn, "Invalid message format")

    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(conn.conn_id)
