"""Main entry point for game action processing.

This module provides the primary interface for processing game actions:
- process_action(): Validates and processes any game action
- Dispatches to specialized handlers based on action type
- Returns ProcessResult with new state and events
"""

import logging
from datetime import datetime, timezone

from app.schemas.game_engine import (
    ClipStage,
    Game,
    Player,
    PlayerSlot,
)
from app.services.game.errors import InternalError

from .actions import (
    GameAction,
    JoinAction,
    JudgeAction,
    SelfFailAction,
    SubmitClipAction,
)
from .events import AnyGameEvent, PlayerJoined
from .judging import process_judge_response, process_judge_set, process_self_fail_response
from .recording import process_self_fail_set, process_submit_clip
from .validation import ProcessResult, validate_action

logger = logging.getLogger(__name__)


def process_action(
    game: Game,
    action: GameAction,
    actor_uid: str,
    now: datetime | None = None,
) -> ProcessResult:
    """Process a game action and return the result.

    This is the main entry point for all game actions. It:
    1. Validates the action is legal given current state and actor
    2. Dispatches to the appropriate handler
    3. Returns ProcessResult with the new game and events

    The input game is never modified.

    Args:
        game: Current game state.
        action: The action to process.
        actor_uid: Identity of the caller.
        now: Transition timestamp, defaults to the current UTC time.

    Returns:
        ProcessResult containing:
        - success: Whether the action was accepted
        - state: The new game (if accepted)
        - events: Events describing the transition
        - error: Typed GameError (if rejected)

    Example:
        >>> result = process_action(game, JudgeAction(stage="set", approve=True), uid)
        >>> if result.success:
        ...     save(result.state)
        ... else:
        ...     raise result.error
    """
    now = now or datetime.now(timezone.utc)
    action_type = type(action).__name__
    logger.info(
        "Processing action: type=%s, actor=%s, code=%s, phase=%s",
        action_type,
        actor_uid,
        game.code,
        game.phase.value,
    )
    logger.debug("Action details: %s", action)

    validation = validate_action(game, action, actor_uid)
    if not validation.is_valid:
        logger.warning(
            "Action validation failed: code=%s, message=%s, actor=%s, action=%s",
            validation.error.code,
            validation.error.message,
            actor_uid,
            action_type,
        )
        return ProcessResult.failure(validation.error)

    actor_slot = validation.actor_slot
    logger.debug("Dispatching to handler for action type: %s", action_type)

    if isinstance(action, JoinAction):
        result = process_join(game, action.name, actor_uid, now)

    elif isinstance(action, SubmitClipAction):
        result = process_submit_clip(game, action.stage, action.clip_ref, actor_slot, now)

    elif isinstance(action, JudgeAction):
        if action.stage is ClipStage.SET:
            result = process_judge_set(game, action.approve, actor_slot, now)
        else:
            result = process_judge_response(game, action.approve, actor_slot, now)

    elif isinstance(action, SelfFailAction):
        if action.stage is ClipStage.SET:
            result = process_self_fail_set(game, actor_slot, now)
        else:
            result = process_self_fail_response(game, actor_slot, now)

    else:
        logger.error("Unknown action type received: %s", action_type)
        return ProcessResult.failure(InternalError(f"Unknown action type: {action_type}"))

    logger.info(
        "Action processed successfully: type=%s, actor=%s, phase=%s, events_generated=%d",
        action_type,
        actor_uid,
        result.state.phase.value,
        len(result.events),
    )
    logger.debug("Generated events: %s", [type(e).__name__ for e in result.events])
    return result


def process_join(game: Game, name: str, actor_uid: str, now: datetime) -> ProcessResult:
    """Seat the second player in slot B.

    Phase and turn are left unchanged.
    """
    player = Player(uid=actor_uid, name=name.strip(), letters="")
    players = game.players.model_copy(update={"B": player})
    events: list[AnyGameEvent] = [PlayerJoined(slot=PlayerSlot.B, name=player.name)]

    logger.info("Player joined: code=%s, uid=%s", game.code, actor_uid)
    new_game = game.model_copy(update={"players": players, "updated_at": now})
    return ProcessResult.ok(new_game, events)
