from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, Field, field_validator

# Letters a player collects for failed responses; spelling the whole word loses.
PENALTY_WORD = "SK8"

MAX_NAME_LENGTH = 60


def _strip(value: object) -> object:
    return value.strip() if isinstance(value, str) else value


# Trimmed before the length limit applies.
DisplayName = Annotated[
    str, BeforeValidator(_strip), Field(min_length=1, max_length=MAX_NAME_LENGTH)
]


class PlayerSlot(str, Enum):
    A = "A"
    B = "B"

    def opponent(self) -> "PlayerSlot":
        return PlayerSlot.B if self is PlayerSlot.A else PlayerSlot.A


# Game phases
class GamePhase(str, Enum):
    SET_RECORD = "SET_RECORD"
    SET_JUDGE = "SET_JUDGE"
    RESP_RECORD = "RESP_RECORD"
    RESP_JUDGE = "RESP_JUDGE"


class ClipStage(str, Enum):
    SET = "set"
    RESPONSE = "response"


class HistoryResult(str, Enum):
    DECLINED_SET = "declined_set"
    APPROVED_SET = "approved_set"
    LANDED = "landed"
    FAILED = "failed"


class Player(BaseModel):
    uid: str = Field(..., min_length=1)
    name: DisplayName
    letters: str = ""

    @field_validator("letters")
    @classmethod
    def validate_letters(cls, v: str) -> str:
        if not PENALTY_WORD.startswith(v):
            raise ValueError(f"letters must be a prefix of {PENALTY_WORD!r}")
        return v

    @property
    def is_out(self) -> bool:
        return self.letters == PENALTY_WORD


class Players(BaseModel):
    A: Player
    B: Player | None = None

    def get(self, slot: PlayerSlot) -> Player | None:
        return self.A if slot is PlayerSlot.A else self.B


class CurrentAttempt(BaseModel):
    """The in-flight attempt: who is setting and the clips recorded so far."""

    by: PlayerSlot
    set_clip: str | None = None
    response_clip: str | None = None


# History entries
# An approved set stays pending until the response is judged; every other
# entry is final the moment it is appended.
class PendingEntry(BaseModel):
    result: Literal["approved_set"] = "approved_set"
    by: PlayerSlot
    set_clip: str | None = None
    response_clip: str | None = None
    ts: datetime

    def resolve(
        self,
        result: Literal["landed", "failed"],
        response_clip: str | None,
        ts: datetime,
    ) -> "ResolvedEntry":
        return ResolvedEntry(
            result=result,
            by=self.by,
            set_clip=self.set_clip,
            response_clip=response_clip,
            ts=ts,
        )


class ResolvedEntry(BaseModel):
    result: Literal["declined_set", "landed", "failed"]
    by: PlayerSlot
    set_clip: str | None = None
    response_clip: str | None = None
    ts: datetime


HistoryEntry = Annotated[PendingEntry | ResolvedEntry, Field(discriminator="result")]


class Game(BaseModel):
    """Authoritative state of one match.

    Transitions never mutate a Game in place; the engine returns a copy built
    with model_copy(update=...).
    """

    code: str = Field(..., pattern=r"^[A-Z0-9]{6}$")
    phase: GamePhase
    turn: PlayerSlot
    winner: PlayerSlot | None = None
    players: Players
    current: CurrentAttempt
    history: list[HistoryEntry] = []
    created_at: datetime
    updated_at: datetime

    @property
    def is_full(self) -> bool:
        return self.players.B is not None

    @property
    def is_finished(self) -> bool:
        return self.winner is not None

    @property
    def setter(self) -> PlayerSlot:
        return self.current.by

    @property
    def responder(self) -> PlayerSlot:
        return self.current.by.opponent()

    @property
    def last_entry(self) -> PendingEntry | ResolvedEntry | None:
        return self.history[-1] if self.history else None

    def slot_for(self, uid: str) -> PlayerSlot | None:
        """Resolve an actor uid to the slot it occupies, if any."""
        if self.players.A.uid == uid:
            return PlayerSlot.A
        if self.players.B is not None and self.players.B.uid == uid:
            return PlayerSlot.B
        return None
