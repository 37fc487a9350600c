"""Game event types - emitted during state transitions for the live feed.

Events describe what happened during a game action, enabling:
- Compact WebSocket updates alongside the new snapshot
- Frontend prompts (whose turn, who gained a letter)
- Audit logging of accepted transitions
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from app.schemas.game_engine import ClipStage, GamePhase, PlayerSlot


class GameEvent(BaseModel):
    """Base class for all game events."""

    event_type: str


class PlayerJoined(GameEvent):
    """The second player took slot B."""

    event_type: Literal["player_joined"] = "player_joined"
    slot: PlayerSlot
    name: str


class ClipSubmitted(GameEvent):
    """A set or response clip was attached to the current attempt."""

    event_type: Literal["clip_submitted"] = "clip_submitted"
    slot: PlayerSlot
    stage: ClipStage
    clip_ref: str


class SetJudged(GameEvent):
    """The opponent ruled on the set clip."""

    event_type: Literal["set_judged"] = "set_judged"
    judge: PlayerSlot
    setter: PlayerSlot
    approved: bool


class ResponseJudged(GameEvent):
    """The setter ruled on the response clip."""

    event_type: Literal["response_judged"] = "response_judged"
    judge: PlayerSlot
    responder: PlayerSlot
    landed: bool


class SelfFailed(GameEvent):
    """A shooter conceded their attempt."""

    event_type: Literal["self_failed"] = "self_failed"
    slot: PlayerSlot
    stage: ClipStage


class LetterGained(GameEvent):
    """A player picked up the next penalty letter."""

    event_type: Literal["letter_gained"] = "letter_gained"
    slot: PlayerSlot
    letters: str


class TurnPassed(GameEvent):
    """The setter role moved (or stayed) and a new round begins."""

    event_type: Literal["turn_passed"] = "turn_passed"
    setter: PlayerSlot
    phase: GamePhase = Field(GamePhase.SET_RECORD)


class GameWon(GameEvent):
    """A player spelled the whole penalty word; the opponent wins."""

    event_type: Literal["game_won"] = "game_won"
    winner: PlayerSlot
    loser: PlayerSlot


# Union of all event types for type checking
AnyGameEvent = Annotated[
    PlayerJoined
    | ClipSubmitted
    | SetJudged
    | ResponseJudged
    | SelfFailed
    | LetterGained
    | TurnPassed
    | GameWon,
    Field(discriminator="event_type"),
]
