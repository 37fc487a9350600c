"""Persistence for game records, the join-code index and rate-limit counters.

Every game record carries a version. Writers read (version, game), compute
the next game and commit with compare_and_set; a commit against a stale
version is refused and the caller retries from a fresh read.

Redis keys:
    - game:{game_id} (Hash) - version, state (Game JSON)
    - game_code:{code} (String) - game_id, claimed with SET NX
    - ratelimit:{operation}:{identifier} (Integer) - fixed-window counter
"""

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import ValidationError
from upstash_redis.asyncio import Redis

from app.schemas.game_engine import Game
from app.services.game.errors import InternalError

logger = logging.getLogger(__name__)

_COMPARE_AND_SET = """
local current = redis.call('HGET', KEYS[1], 'version')
if (not current and ARGV[1] == '0') or current == ARGV[1] then
  redis.call('HSET', KEYS[1], 'version', ARGV[2], 'state', ARGV[3])
  return 1
end
return 0
"""

_HIT_COUNTER = """
local count = redis.call('INCR', KEYS[1])
if count == 1 then
  redis.call('PEXPIRE', KEYS[1], ARGV[1])
end
return count
"""


@dataclass
class StoredGame:
    """A game snapshot together with the version it was read at."""

    game_id: str
    version: int
    game: Game


def _decode_game(game_id: str, raw: str) -> Game:
    try:
        return Game.model_validate_json(raw)
    except ValidationError:
        logger.exception("Stored game %s failed validation", game_id)
        raise InternalError("Game data is invalid.")


class GameStore(ABC):
    """Versioned game records plus the secondary lookups the service needs."""

    def new_game_id(self) -> str:
        return str(uuid.uuid4())

    @abstractmethod
    async def get(self, game_id: str) -> StoredGame | None:
        """Read a consistent snapshot of a game, or None if absent."""

    @abstractmethod
    async def compare_and_set(self, game_id: str, expected_version: int, game: Game) -> bool:
        """Write the full record if it is still at expected_version.

        expected_version 0 means the record must not exist yet.
        """

    @abstractmethod
    async def claim_code(self, code: str, game_id: str) -> bool:
        """Reserve a join code for a game; False if the code is taken."""

    @abstractmethod
    async def find_by_code(self, code: str) -> str | None:
        """Return the game id registered under a join code."""

    @abstractmethod
    async def hit_counter(self, key: str, window_seconds: int) -> int:
        """Increment a fixed-window counter and return the new count."""

    async def close(self) -> None:
        return None


class RedisGameStore(GameStore):
    """Game store backed by Upstash Redis.

    Commits run as Lua scripts so the version check and the write are a
    single atomic step on the server.
    """

    def __init__(self, redis_client: Redis):
        self._redis = redis_client

    def _redis_game_key(self, game_id: str) -> str:
        return f"game:{game_id}"

    def _redis_code_key(self, code: str) -> str:
        return f"game_code:{code}"

    async def get(self, game_id: str) -> StoredGame | None:
        data = await self._redis.hgetall(self._redis_game_key(game_id))
        if not data:
            logger.debug("Game %s not found in Redis", game_id)
            return None

        raw_state = data.get("state")
        raw_version = data.get("version")
        if raw_state is None or raw_version is None:
            logger.error("Game %s record is missing fields: %s", game_id, sorted(data))
            raise InternalError("Game data is invalid.")

        return StoredGame(
            game_id=game_id,
            version=int(raw_version),
            game=_decode_game(game_id, raw_state),
        )

    async def compare_and_set(self, game_id: str, expected_version: int, game: Game) -> bool:
        committed = await self._redis.eval(
            _COMPARE_AND_SET,
            keys=[self._redis_game_key(game_id)],
            args=[str(expected_version), str(expected_version + 1), game.model_dump_json()],
        )
        if int(committed or 0) != 1:
            logger.debug(
                "Version conflict on game %s (expected version %d)",
                game_id,
                expected_version,
            )
            return False
        logger.debug("Committed game %s at version %d", game_id, expected_version + 1)
        return True

    async def claim_code(self, code: str, game_id: str) -> bool:
        result = await self._redis.set(self._redis_code_key(code), game_id, nx=True)
        return bool(result)

    async def find_by_code(self, code: str) -> str | None:
        game_id = await self._redis.get(self._redis_code_key(code))
        return str(game_id) if game_id else None

    async def hit_counter(self, key: str, window_seconds: int) -> int:
        count = await self._redis.eval(
            _HIT_COUNTER,
            keys=[key],
            args=[str(window_seconds * 1000)],
        )
        return int(count)


class InMemoryGameStore(GameStore):
    """Process-local game store with the same versioning semantics.

    Records are kept serialized so every read is an independent snapshot.
    Used for tests and single-process local development.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._games: dict[str, tuple[int, str]] = {}
        self._codes: dict[str, str] = {}
        # key -> (expires_at, count)
        self._counters: dict[str, tuple[float, int]] = {}

    async def get(self, game_id: str) -> StoredGame | None:
        record = self._games.get(game_id)
        # Yield so concurrent transactions can interleave between read and commit.
        await asyncio.sleep(0)
        if record is None:
            return None
        version, raw_state = record
        return StoredGame(game_id=game_id, version=version, game=_decode_game(game_id, raw_state))

    async def compare_and_set(self, game_id: str, expected_version: int, game: Game) -> bool:
        current = self._games.get(game_id)
        current_version = current[0] if current else 0
        if current_version != expected_version:
            logger.debug(
                "Version conflict on game %s (expected %d, found %d)",
                game_id,
                expected_version,
                current_version,
            )
            return False
        self._games[game_id] = (expected_version + 1, game.model_dump_json())
        return True

    async def claim_code(self, code: str, game_id: str) -> bool:
        if code in self._codes:
            return False
        self._codes[code] = game_id
        return True

    async def find_by_code(self, code: str) -> str | None:
        return self._codes.get(code)

    async def hit_counter(self, key: str, window_seconds: int) -> int:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._counters.items() if expires_at <= now]
        for k in expired:
            del self._counters[k]

        expires_at, count = self._counters.get(key, (now + window_seconds, 0))
        count += 1
        self._counters[key] = (expires_at, count)
        return count
