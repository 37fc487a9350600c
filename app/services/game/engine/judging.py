"""Judgement of set and response clips.

Set judgement appends a history entry. Response judgement (and the
responder's self-fail) resolves the pending approved_set entry that the set
approval left behind; it is the only place history entries are rewritten.
"""

import logging
from datetime import datetime
from typing import Literal

from app.schemas.game_engine import (
    ClipStage,
    CurrentAttempt,
    Game,
    GamePhase,
    PendingEntry,
    PlayerSlot,
    ResolvedEntry,
)
from app.services.game.errors import InternalError

from .events import (
    AnyGameEvent,
    GameWon,
    LetterGained,
    ResponseJudged,
    SelfFailed,
    SetJudged,
    TurnPassed,
)
from .letters import next_letters
from .validation import ProcessResult

logger = logging.getLogger(__name__)


def process_judge_set(
    game: Game,
    approve: bool,
    actor_slot: PlayerSlot,
    now: datetime,
) -> ProcessResult:
    """Opponent approves or declines the set clip.

    Approving keeps the set clip and opens the response. Declining sends the
    same setter back to record again.
    """
    setter = game.setter
    events: list[AnyGameEvent] = [SetJudged(judge=actor_slot, setter=setter, approved=approve)]

    if approve:
        entry = PendingEntry(by=setter, set_clip=game.current.set_clip, ts=now)
        update = {
            "history": [*game.history, entry],
            "phase": GamePhase.RESP_RECORD,
            "turn": setter,
            "current": CurrentAttempt(by=setter, set_clip=game.current.set_clip),
            "updated_at": now,
        }
    else:
        entry = ResolvedEntry(
            result="declined_set",
            by=setter,
            set_clip=game.current.set_clip,
            ts=now,
        )
        update = {
            "history": [*game.history, entry],
            "phase": GamePhase.SET_RECORD,
            "turn": setter,
            "current": CurrentAttempt(by=setter),
            "updated_at": now,
        }
        events.append(TurnPassed(setter=setter))

    logger.info(
        "Set judged: code=%s, setter=%s, approved=%s, next_phase=%s",
        game.code,
        setter.value,
        approve,
        update["phase"].value,
    )
    return ProcessResult.ok(game.model_copy(update=update), events)


def _finish_round(
    game: Game,
    result: Literal["landed", "failed"],
    response_clip: str | None,
    now: datetime,
    events: list[AnyGameEvent],
) -> ProcessResult:
    """Resolve the pending entry, score the responder and rotate the setter."""
    pending = game.last_entry
    if not isinstance(pending, PendingEntry):
        logger.error("No pending set approval to resolve: code=%s", game.code)
        return ProcessResult.failure(InternalError("Set approval record missing"))

    setter = game.setter
    responder = game.responder
    resolved = pending.resolve(result, response_clip, now)

    update: dict = {
        "history": [*game.history[:-1], resolved],
        "phase": GamePhase.SET_RECORD,
        "turn": responder,
        "current": CurrentAttempt(by=responder),
        "updated_at": now,
    }

    if result == "failed":
        responder_player = game.players.get(responder)
        letters, completed = next_letters(responder_player.letters)
        players = game.players.model_copy(
            update={responder.value: responder_player.model_copy(update={"letters": letters})}
        )
        update["players"] = players
        events.append(LetterGained(slot=responder, letters=letters))
        logger.info(
            "Letter gained: code=%s, slot=%s, letters=%s",
            game.code,
            responder.value,
            letters,
        )
        if completed:
            update["winner"] = setter
            events.append(GameWon(winner=setter, loser=responder))
            logger.info("Game won: code=%s, winner=%s", game.code, setter.value)

    events.append(TurnPassed(setter=responder))
    return ProcessResult.ok(game.model_copy(update=update), events)


def process_judge_response(
    game: Game,
    approve: bool,
    actor_slot: PlayerSlot,
    now: datetime,
) -> ProcessResult:
    """Setter rules the response landed or failed.

    A failed response costs the responder a letter. Either way the responder
    sets next.
    """
    logger.info(
        "Response judged: code=%s, responder=%s, landed=%s",
        game.code,
        game.responder.value,
        approve,
    )
    events: list[AnyGameEvent] = [
        ResponseJudged(judge=actor_slot, responder=game.responder, landed=approve),
    ]
    return _finish_round(
        game,
        "landed" if approve else "failed",
        game.current.response_clip,
        now,
        events,
    )


def process_self_fail_response(
    game: Game,
    actor_slot: PlayerSlot,
    now: datetime,
) -> ProcessResult:
    """Responder concedes the trick; scored exactly like a failed response."""
    logger.info("Response self-failed: code=%s, slot=%s", game.code, actor_slot.value)
    events: list[AnyGameEvent] = [SelfFailed(slot=actor_slot, stage=ClipStage.RESPONSE)]
    return _finish_round(game, "failed", None, now, events)
