import logging

from app.config import get_settings
from app.dependencies.store import get_game_store
from app.services.game.service import GameService
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)

_game_service: GameService | None = None


def get_game_service() -> GameService:
    """Get the singleton GameService wired to the store and the live feed."""
    global _game_service
    if _game_service is None:
        manager = get_connection_manager()
        _game_service = GameService(
            store=get_game_store(),
            settings=get_settings(),
            feed=manager.publish_game_update,
        )
        logger.debug("GameService initialized")
    return _game_service


def set_game_service(service: GameService | None) -> None:
    """Replace the global GameService (used by tests)."""
    global _game_service
    _game_service = service
