"""Base types and helpers for WebSocket message handlers."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from app.schemas.ws import (
    ErrorPayload,
    MessageType,
    WSClientMessage,
    WSServerMessage,
)
from app.services.game.errors import GameError

if TYPE_CHECKING:
    from app.services.websocket.manager import ConnectionManager

T = TypeVar("T", bound=BaseModel)


@dataclass
class HandlerContext:
    """Context passed to each message handler."""

    connection_id: str
    user_id: str
    game_id: str
    message: WSClientMessage
    manager: "ConnectionManager"
    client_ip: str | None = None


@dataclass
class HandlerResult:
    """Result returned by message handlers.

    Game updates reach other subscribers through the live feed, so handlers
    only answer the requesting connection.
    """

    success: bool
    response: WSServerMessage | None = None


def validate_payload(
    payload: dict | None,
    schema: type[T],
    request_id: str | None,
    error_type: MessageType,
) -> tuple[T | None, HandlerResult | None]:
    """Validate payload against a Pydantic schema.

    Returns:
        Tuple of (validated_payload, error_result). One will be None.
    """
    try:
        validated = schema.model_validate(payload or {})
        return validated, None
    except ValidationError as e:
        return None, error_response(
            error_code="INVALID_INPUT",
            message=str(e),
            error_type=error_type,
            request_id=request_id,
        )


def error_response(
    error_code: str,
    message: str,
    error_type: MessageType,
    request_id: str | None = None,
    retryable: bool = False,
) -> HandlerResult:
    """Build an error HandlerResult."""
    return HandlerResult(
        success=False,
        response=WSServerMessage(
            type=error_type,
            request_id=request_id,
            payload=ErrorPayload(
                error_code=error_code,
                message=message,
                retryable=retryable,
            ).model_dump(),
        ),
    )


def game_error_response(error: GameError, request_id: str | None = None) -> HandlerResult:
    """Build a GAME_ERROR HandlerResult from a typed game failure."""
    return error_response(
        error_code=error.code,
        message=error.message,
        error_type=MessageType.GAME_ERROR,
        request_id=request_id,
        retryable=error.retryable,
    )
