"""Clip submission and set concession.

Both run while a shooter is recording: attaching a clip moves the game into
the matching judge phase, and conceding a set hands the setter role over.
"""

import logging
from datetime import datetime

from app.schemas.game_engine import (
    ClipStage,
    CurrentAttempt,
    Game,
    GamePhase,
    PlayerSlot,
    ResolvedEntry,
)

from .events import AnyGameEvent, ClipSubmitted, SelfFailed, TurnPassed
from .validation import ProcessResult

logger = logging.getLogger(__name__)


def process_submit_clip(
    game: Game,
    stage: ClipStage,
    clip_ref: str,
    actor_slot: PlayerSlot,
    now: datetime,
) -> ProcessResult:
    """Attach a set or response clip to the current attempt.

    Args:
        game: Current game (already validated for this action).
        stage: Which clip is being submitted.
        clip_ref: Validated clip reference.
        actor_slot: The shooter.
        now: Transition timestamp.

    Returns:
        ProcessResult with the game in SET_JUDGE or RESP_JUDGE.
    """
    if stage is ClipStage.SET:
        current = game.current.model_copy(update={"set_clip": clip_ref, "response_clip": None})
        next_phase = GamePhase.SET_JUDGE
    else:
        current = game.current.model_copy(update={"response_clip": clip_ref})
        next_phase = GamePhase.RESP_JUDGE

    logger.info(
        "Clip submitted: code=%s, slot=%s, stage=%s, next_phase=%s",
        game.code,
        actor_slot.value,
        stage.value,
        next_phase.value,
    )

    new_game = game.model_copy(
        update={
            "current": current,
            "phase": next_phase,
            "updated_at": now,
        }
    )
    events: list[AnyGameEvent] = [
        ClipSubmitted(slot=actor_slot, stage=stage, clip_ref=clip_ref),
    ]
    return ProcessResult.ok(new_game, events)


def process_self_fail_set(game: Game, actor_slot: PlayerSlot, now: datetime) -> ProcessResult:
    """Setter gives up their set; the opponent becomes the setter.

    No letter is awarded for a failed set.
    """
    opponent = actor_slot.opponent()
    entry = ResolvedEntry(
        result="failed",
        by=actor_slot,
        set_clip=None,
        response_clip=None,
        ts=now,
    )

    logger.info(
        "Set self-failed: code=%s, slot=%s, new_setter=%s",
        game.code,
        actor_slot.value,
        opponent.value,
    )

    new_game = game.model_copy(
        update={
            "history": [*game.history, entry],
            "phase": GamePhase.SET_RECORD,
            "turn": opponent,
            "current": CurrentAttempt(by=opponent),
            "updated_at": now,
        }
    )
    events: list[AnyGameEvent] = [
        SelfFailed(slot=actor_slot, stage=ClipStage.SET),
        TurnPassed(setter=opponent),
    ]
    return ProcessResult.ok(new_game, events)
