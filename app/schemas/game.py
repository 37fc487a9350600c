"""Pydantic schemas for the game REST endpoints."""

from pydantic import BaseModel, Field

from app.schemas.game_engine import DisplayName, Game, GamePhase, PlayerSlot


class CreateGameRequest(BaseModel):
    """Request body for creating a game."""

    name: DisplayName = Field(..., description="Creator's display name")


class JoinGameRequest(BaseModel):
    """Request body for joining a game."""

    code: str = Field(
        ...,
        min_length=6,
        max_length=6,
        pattern=r"^[A-Za-z0-9]{6}$",
        description="6-character game code (case-insensitive)",
    )
    name: DisplayName = Field(..., description="Joiner's display name")


class GameCodeResponse(BaseModel):
    """Response from creating or joining a game."""

    game_id: str = Field(..., description="Identifier of the game record")
    code: str = Field(..., min_length=6, max_length=6, description="6-character game code")


class ClipRequest(BaseModel):
    """Request body for submitting a set or response clip."""

    storage_path: str = Field(
        ...,
        min_length=1,
        description="Path of the uploaded clip, games/{game_id}/{set|response}/...",
    )


class JudgeRequest(BaseModel):
    """Request body for judging a set or response clip."""

    approve: bool


class ActionResponse(BaseModel):
    """Summary returned after any gameplay action."""

    phase: GamePhase
    turn: PlayerSlot
    winner: PlayerSlot | None = None


class GameSnapshotResponse(BaseModel):
    """Current game record with its store version."""

    game_id: str
    version: int
    game: Game
