from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class MessageType(str, Enum):
    """WebSocket message types."""

    # Core
    PING = "ping"
    PONG = "pong"
    CONNECTED = "connected"
    ERROR = "error"

    # Game
    GAME_ACTION = "game_action"
    GAME_ACTION_OK = "game_action_ok"
    GAME_EVENTS = "game_events"
    GAME_STATE = "game_state"
    GAME_ERROR = "game_error"


class WSCloseCode:
    """WebSocket close codes (RFC 6455 + custom)."""

    # Standard RFC 6455 codes
    NORMAL = 1000
    GOING_AWAY = 1001
    POLICY_VIOLATION = 1008
    INTERNAL_ERROR = 1011

    # Custom application codes (4000-4999)
    AUTH_FAILED = 4001
    AUTH_EXPIRED = 4002
    GAME_NOT_FOUND = 4003
    NOT_PARTICIPANT = 4004


class WSClientMessage(BaseModel):
    """Message sent from client to server."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


class WSServerMessage(BaseModel):
    """Message sent from server to client."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


# --- Payload schemas ---


class ConnectedPayload(BaseModel):
    """Payload for the 'connected' message."""

    connection_id: str
    user_id: str
    server_id: str
    game_id: str


class PongPayload(BaseModel):
    """Payload for the 'pong' message."""

    server_time: datetime = Field(default_factory=lambda: datetime.now())


class ErrorPayload(BaseModel):
    """Payload for error messages (ERROR, GAME_ERROR)."""

    error_code: str
    message: str
    retryable: bool = False


class GameStatePayload(BaseModel):
    """Full game snapshot pushed on connect and after every transition."""

    game_id: str
    game: dict[str, Any]


class GameEventsPayload(BaseModel):
    """Events produced by one committed transition."""

    game_id: str
    events: list[dict[str, Any]]


class GameActionPayload(BaseModel):
    """Payload for GAME_ACTION messages; mirrors the engine action types."""

    action_type: str
    stage: str | None = None
    clip_ref: str | None = None
    approve: bool | None = None
