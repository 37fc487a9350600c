"""Penalty letter progression."""

from app.schemas.game_engine import PENALTY_WORD


def next_letters(current: str) -> tuple[str, bool]:
    """Advance a player's letters by one.

    Args:
        current: The player's letters, always a prefix of PENALTY_WORD.

    Returns:
        (letters, completed) where completed is True once the whole word is
        spelled. Applying this to a completed word returns it unchanged.

    Raises:
        ValueError: If current is not a prefix of PENALTY_WORD.
    """
    if not PENALTY_WORD.startswith(current):
        raise ValueError(f"Invalid letters: {current!r}")

    if len(current) >= len(PENALTY_WORD):
        return PENALTY_WORD, True

    value = PENALTY_WORD[: len(current) + 1]
    return value, value == PENALTY_WORD
