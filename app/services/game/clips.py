"""Shape validation for clip references.

Clips live in external blob storage under games/{game_id}/{stage}/...; only
the path is checked here, never the content.
"""

import logging

from app.schemas.game_engine import ClipStage
from app.services.game.errors import InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_CLIP_EXTENSIONS = ("mp4", "mov", "webm")


def validate_clip_path(
    game_id: str,
    path: str,
    stage: ClipStage,
    allowed_extensions: tuple[str, ...] | list[str] = DEFAULT_CLIP_EXTENSIONS,
) -> str:
    """Check that a clip path belongs to this game and stage.

    Args:
        game_id: The game the clip is submitted to.
        path: Storage path supplied by the client.
        stage: Whether this is a set or a response clip.
        allowed_extensions: Lower-case extensions without the dot.

    Returns:
        The trimmed path.

    Raises:
        InvalidInputError: If the path points outside the game's namespace,
            contains traversal segments, is in the wrong folder or has an
            unsupported extension.
    """
    trimmed = path.strip()
    if not trimmed.startswith(f"games/{game_id}/"):
        logger.warning("Clip rejected: outside game namespace, game=%s", game_id)
        raise InvalidInputError("Storage path must be scoped to the game.")
    if ".." in trimmed:
        logger.warning("Clip rejected: traversal segment, game=%s", game_id)
        raise InvalidInputError("Storage path contains invalid segments.")

    segments = trimmed.split("/")
    if len(segments) < 4 or any(not segment for segment in segments):
        raise InvalidInputError("Storage path is incomplete.")
    if segments[0] != "games" or segments[1] != game_id:
        raise InvalidInputError("Storage path mismatch.")

    if segments[2] != stage.value:
        raise InvalidInputError(
            f"{stage.value.capitalize()} clips must be saved under the {stage.value} folder."
        )

    filename = segments[-1]
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension not in allowed_extensions:
        logger.warning("Clip rejected: extension=%r, game=%s", extension, game_id)
        raise InvalidInputError("Unsupported video type.")

    return trimmed
