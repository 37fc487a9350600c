"""Join code generation."""

import logging
import re
import secrets
from collections.abc import Awaitable, Callable

from app.services.game.errors import InternalError, InvalidInputError

logger = logging.getLogger(__name__)

# No 0/O or 1/I so codes read unambiguously aloud and on screen.
CODE_CHARS = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"
CODE_LENGTH = 6

_CODE_PATTERN = re.compile(r"^[A-Z0-9]{6}$")


def random_code() -> str:
    return "".join(secrets.choice(CODE_CHARS) for _ in range(CODE_LENGTH))


def normalize_code(code: str) -> str:
    """Upper-case and check a code typed by a player.

    Raises:
        InvalidInputError: If the code is not six alphanumeric characters.
    """
    normalized = code.strip().upper()
    if not _CODE_PATTERN.match(normalized):
        raise InvalidInputError("Game code must be 6 letters or digits.")
    return normalized


async def generate_unique_code(
    claim: Callable[[str], Awaitable[bool]],
    max_attempts: int = 10,
    generator: Callable[[], str] = random_code,
) -> str:
    """Generate a code and claim it until one is free.

    Args:
        claim: Atomically reserves a code, returning False if it is taken.
        max_attempts: How many candidates to try before giving up.
        generator: Source of candidate codes.

    Returns:
        The claimed code.

    Raises:
        InternalError: If every attempt collided.
    """
    for attempt in range(1, max_attempts + 1):
        candidate = generator()
        if await claim(candidate):
            logger.debug("Claimed game code %s on attempt %d", candidate, attempt)
            return candidate
        logger.debug("Game code collision: %s (attempt %d)", candidate, attempt)

    logger.error("Unable to generate a unique game code after %d attempts", max_attempts)
    raise InternalError("Unable to generate a unique game code.")
