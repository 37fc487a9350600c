import logging

from upstash_redis.asyncio import Redis

from app.config import get_settings
from app.services.game.store import GameStore, InMemoryGameStore, RedisGameStore

logger = logging.getLogger(__name__)

_redis_client: Redis | None = None
_game_store: GameStore | None = None


def _create_redis_client() -> Redis:
    settings = get_settings()
    logger.info("Initializing Upstash Redis client")
    client = Redis(
        url=settings.UPSTASH_REDIS_REST_URL,
        token=settings.UPSTASH_REDIS_REST_TOKEN,
    )
    logger.debug("Redis client initialized with URL: %s", settings.UPSTASH_REDIS_REST_URL)
    return client


def get_game_store() -> GameStore:
    """Get the singleton game store for the configured backend.

    The redis backend shares one Upstash client for game records, the join
    code index and rate-limit counters.
    """
    global _game_store, _redis_client
    if _game_store is None:
        backend = get_settings().GAME_STORE_BACKEND
        if backend == "memory":
            logger.warning("Using in-memory game store; state is lost on restart")
            _game_store = InMemoryGameStore()
        else:
            _redis_client = _create_redis_client()
            _game_store = RedisGameStore(_redis_client)
        logger.info("Game store initialized: backend=%s", backend)
    return _game_store


def set_game_store(store: GameStore | None) -> None:
    """Replace the global game store (used by tests)."""
    global _game_store
    _game_store = store


async def close_game_store() -> None:
    """Close the game store and its Redis client, if any."""
    global _game_store, _redis_client
    if _game_store is not None:
        await _game_store.close()
        _game_store = None
    if _redis_client is not None:
        logger.info("Closing Upstash Redis client")
        await _redis_client.close()
        _redis_client = None
        logger.debug("Redis client closed")
