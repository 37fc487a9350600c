"""Handler for GAME_ACTION messages."""

import logging

from pydantic import ValidationError

from app.schemas.ws import (
    GameActionPayload,
    MessageType,
    WSServerMessage,
)
from app.services.game.engine import build_action_from_payload
from app.services.game.errors import GameError
from app.services.game.service import Actor

from . import handler
from .base import (
    HandlerContext,
    HandlerResult,
    error_response,
    game_error_response,
    validate_payload,
)

logger = logging.getLogger(__name__)


@handler(MessageType.GAME_ACTION)
async def handle_game_action(ctx: HandlerContext) -> HandlerResult:
    """Handle GAME_ACTION by running it through the game service.

    Flow:
    1. Validate payload
    2. Build a typed engine action
    3. Apply it transactionally to the connection's game
    4. Acknowledge the requester; the service feed broadcasts the update

    Returns:
        HandlerResult with GAME_ACTION_OK or GAME_ERROR for the requester.
    """
    # Import here to avoid circular imports
    from app.dependencies.game import get_game_service

    payload, validation_error = validate_payload(
        ctx.message.payload,
        GameActionPayload,
        ctx.message.request_id,
        MessageType.GAME_ERROR,
    )
    if validation_error:
        return validation_error

    try:
        action = build_action_from_payload(payload.model_dump(exclude_none=True))
    except (ValueError, ValidationError) as e:
        logger.info("Invalid game action from user %s: %s", ctx.user_id, e)
        return error_response(
            error_code="INVALID_INPUT",
            message="Invalid game action",
            error_type=MessageType.GAME_ERROR,
            request_id=ctx.message.request_id,
        )

    service = get_game_service()
    try:
        outcome = await service.apply_action(
            Actor(uid=ctx.user_id, ip=ctx.client_ip), ctx.game_id, action
        )
    except GameError as e:
        logger.info(
            "Game action failed for user %s in game %s: %s - %s",
            ctx.user_id,
            ctx.game_id,
            e.code,
            e.message,
        )
        return game_error_response(e, ctx.message.request_id)

    logger.info(
        "Game action processed for user %s in game %s: phase=%s, %d events",
        ctx.user_id,
        ctx.game_id,
        outcome.phase.value,
        len(outcome.events),
    )

    return HandlerResult(
        success=True,
        response=WSServerMessage(
            type=MessageType.GAME_ACTION_OK,
            request_id=ctx.message.request_id,
            payload={
                "phase": outcome.phase.value,
                "turn": outcome.turn.value,
                "winner": outcome.winner.value if outcome.winner else None,
            },
        ),
    )
