import json
import logging
import time
from collections import defaultdict

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from app.dependencies.game import get_game_service
from app.schemas.ws import (
    ErrorPayload,
    MessageType,
    WSClientMessage,
    WSCloseCode,
    WSServerMessage,
)
from app.services.game.errors import NotFoundError, NotParticipantError
from app.services.game.service import Actor
from app.services.identity import get_token_verifier
from app.services.websocket.handlers import HandlerContext, dispatch
from app.services.websocket.manager import (
    ConnectionManager,
    game_state_message,
    get_connection_manager,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

MAX_MESSAGE_SIZE = 16 * 1024  # 16 KB
MAX_MESSAGES_PER_SECOND = 10
RATE_LIMIT_WINDOW = 1.0  # seconds


class MessageRateLimiter:
    """Sliding-window message limiter per connection."""

    def __init__(
        self, max_messages: int = MAX_MESSAGES_PER_SECOND, window: float = RATE_LIMIT_WINDOW
    ):
        self.max_messages = max_messages
        self.window = window
        self._sent: dict[str, list[float]] = defaultdict(list)

    def is_allowed(self, connection_id: str) -> bool:
        now = time.time()
        cutoff = now - self.window
        recent = [t for t in self._sent[connection_id] if t > cutoff]
        if len(recent) >= self.max_messages:
            self._sent[connection_id] = recent
            return False
        recent.append(now)
        self._sent[connection_id] = recent
        return True

    def remove(self, connection_id: str) -> None:
        self._sent.pop(connection_id, None)


_message_limiter = MessageRateLimiter()


async def _send_error(
    manager: ConnectionManager, connection_id: str, error_code: str, message: str
) -> None:
    await manager.send_to_connection(
        connection_id,
        WSServerMessage(
            type=MessageType.ERROR,
            payload=ErrorPayload(error_code=error_code, message=message).model_dump(),
        ),
    )


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(..., description="JWT authentication token"),
    game_id: str = Query(..., min_length=1, description="Game to watch"),
):
    """Live feed for one game.

    Clients connect with: ws://host/api/v1/ws?token=<jwt>&game_id=<id>

    The token, the game and the caller's seat in it are checked before the
    connection is accepted.
    After 'connected' the server sends a game_state snapshot, then pushes
    game_events and game_state after every committed transition. Clients may
    also send game_action messages instead of calling the REST endpoints.
    """
    auth_result = await get_token_verifier().validate_token(token)
    if not auth_result.success:
        logger.warning("WS connection rejected: %s", auth_result.error)
        close_code = WSCloseCode.AUTH_EXPIRED if auth_result.expired else WSCloseCode.AUTH_FAILED
        await websocket.close(code=close_code)
        return
    user_id = auth_result.uid
    client_ip = websocket.client.host if websocket.client else None

    try:
        stored = await get_game_service().get_game(Actor(uid=user_id, ip=client_ip), game_id)
    except NotFoundError:
        logger.warning("WS connection rejected for user %s: game %s not found", user_id, game_id)
        await websocket.close(code=WSCloseCode.GAME_NOT_FOUND)
        return
    except NotParticipantError:
        logger.warning("WS connection rejected for user %s: not a player in %s", user_id, game_id)
        await websocket.close(code=WSCloseCode.NOT_PARTICIPANT)
        return

    await websocket.accept()
    logger.info("WS connection accepted for user %s on game %s", user_id, game_id)

    manager = get_connection_manager()
    connection = await manager.connect(websocket, user_id, game_id)
    await manager.send_to_connection(
        connection.connection_id, game_state_message(game_id, stored.game)
    )

    try:
        while True:
            if websocket.client_state != WebSocketState.CONNECTED:
                logger.debug("WebSocket no longer connected, exiting loop")
                break

            try:
                message_data = await websocket.receive()
            except RuntimeError as e:
                logger.debug("Error receiving message: %s", e)
                break

            if message_data.get("type") == "websocket.disconnect":
                break

            raw_text = message_data.get("text")
            raw_bytes = message_data.get("bytes")
            if raw_text:
                message_size = len(raw_text.encode("utf-8"))
            elif raw_bytes:
                message_size = len(raw_bytes)
            else:
                continue

            if message_size > MAX_MESSAGE_SIZE:
                logger.warning(
                    "Message too large from connection %s: %d bytes (max %d)",
                    connection.connection_id,
                    message_size,
                    MAX_MESSAGE_SIZE,
                )
                await _send_error(
                    manager,
                    connection.connection_id,
                    "MESSAGE_TOO_LARGE",
                    f"Message exceeds maximum size of {MAX_MESSAGE_SIZE} bytes",
                )
                continue

            if not _message_limiter.is_allowed(connection.connection_id):
                logger.warning("Message rate exceeded for connection %s", connection.connection_id)
                await _send_error(
                    manager,
                    connection.connection_id,
                    "RATE_LIMITED",
                    "Too many messages, please slow down",
                )
                continue

            if not raw_text:
                continue

            try:
                message = WSClientMessage.model_validate(json.loads(raw_text))
            except json.JSONDecodeError:
                logger.warning("Invalid JSON from connection %s", connection.connection_id)
                await _send_error(
                    manager, connection.connection_id, "INVALID_JSON", "Invalid JSON format"
                )
                continue
            except ValidationError as e:
                logger.warning("Invalid message from connection %s: %s", connection.connection_id, e)
                await _send_error(
                    manager, connection.connection_id, "INVALID_MESSAGE", "Invalid message format"
                )
                continue

            ctx = HandlerContext(
                connection_id=connection.connection_id,
                user_id=user_id,
                game_id=game_id,
                message=message,
                manager=manager,
                client_ip=client_ip,
            )
            result = await dispatch(ctx)

            if result is None:
                logger.debug(
                    "Unhandled message type %s from connection %s",
                    message.type,
                    connection.connection_id,
                )
                continue

            if result.response:
                await manager.send_to_connection(connection.connection_id, result.response)

    except WebSocketDisconnect as e:
        logger.info("WS disconnected: connection %s, code %s", connection.connection_id, e.code)
    except Exception:
        logger.exception("WS error for connection %s", connection.connection_id)
    finally:
        _message_limiter.remove(connection.connection_id)
        await manager.disconnect(connection.connection_id)
