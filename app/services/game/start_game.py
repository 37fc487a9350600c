from datetime import datetime, timezone

from app.schemas.game_engine import (
    MAX_NAME_LENGTH,
    CurrentAttempt,
    Game,
    GamePhase,
    Player,
    Players,
    PlayerSlot,
)


def validate_display_name(name: str) -> str:
    """Trim a display name and check its length.

    Raises:
        ValueError: If the trimmed name is empty or longer than 60 characters.
    """
    trimmed = name.strip()
    if not trimmed:
        raise ValueError("Name is required.")
    if len(trimmed) > MAX_NAME_LENGTH:
        raise ValueError("Name must be at most 60 characters.")
    return trimmed


def initialize_game(
    code: str,
    creator_uid: str,
    creator_name: str,
    now: datetime | None = None,
) -> Game:
    """
    Build a new game with the creator in slot A, waiting for an opponent.

    Args:
        code: The unique join code already claimed for this game.
        creator_uid: Identity of the creating player.
        creator_name: Display name of the creating player.
        now: Creation timestamp, defaults to the current UTC time.

    Returns:
        A Game in SET_RECORD with slot A setting first.

    Raises:
        ValueError: If the name is invalid.
    """
    now = now or datetime.now(timezone.utc)
    name = validate_display_name(creator_name)

    return Game(
        code=code,
        phase=GamePhase.SET_RECORD,
        turn=PlayerSlot.A,
        winner=None,
        players=Players(A=Player(uid=creator_uid, name=name, letters=""), B=None),
        current=CurrentAttempt(by=PlayerSlot.A),
        history=[],
        created_at=now,
        updated_at=now,
    )
