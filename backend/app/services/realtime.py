"""Socket.IO server pushing notifications to per-user rooms."""

import logging
from typing import Any, Optional

import socketio
from fastapi import HTTPException

from app.core.config import get_settings
from app.core.database import async_session_maker
from app.core.security import decode_token, load_user

logger = logging.getLogger(__name__)

settings = get_settings()

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.origins,
    logger=False,
    engineio_logger=False,
)


def user_room(user_id: Any) -> str:
    return f"user:{user_id}"


def _extract_token(environ: dict, auth: Optional[dict]) -> Optional[str]:
    if auth and auth.get("token"):
        return auth["token"]
    header = environ.get("HTTP_AUTHORIZATION", "")
    if header.lower().startswith("bearer "):
        return header[7:]
    return None


@sio.event
async def connect(sid, environ, auth=None):
    """Authenticate the handshake and join the caller's private room."""
    token = _extract_token(environ, auth)
    if not token:
        raise socketio.exceptions.ConnectionRefusedError("Authentication required")

    try:
        principal = decode_token(token)
    except HTTPException as e:
        raise socketio.exceptions.ConnectionRefusedError(e.detail)

    async with async_session_maker() as db:
        user = await load_user(db, principal.uid)

    if not user or not user.is_active:
        raise socketio.exceptions.ConnectionRefusedError("User not found or inactive")

    await sio.save_session(sid, {"user_id": str(user.id)})
    await sio.enter_room(sid, user_room(user.id))
    logger.info("Socket %s connected for user %s", sid, user.id)


@sio.event
async def disconnect(sid):
    logger.debug("Socket %s disconnected", sid)


async def emit_to_user(user_id: Any, event: str, data: dict[str, Any]) -> None:
    """Push an event to every socket of a user. Failures are logged, never raised."""
    try:
        await sio.emit(event, data, room=user_room(user_id))
    except Exception as e:  # transport errors of any kind
        logger.warning("Socket emit %s to user %s failed: %s", event, user_id, e)
