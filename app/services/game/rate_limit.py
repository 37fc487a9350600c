"""Per-operation rate limiting keyed by actor and network origin."""

import logging
import re

from app.config import RateLimitRule
from app.services.game.errors import InvalidInputError, RateLimitedError
from app.services.game.store import GameStore

logger = logging.getLogger(__name__)

_IDENTIFIER_PATTERN = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_identifier(identifier: str) -> str:
    return _IDENTIFIER_PATTERN.sub("-", identifier)


class RateLimiter:
    """Fixed-window limiter whose buckets live in the game store.

    Each (operation, identifier) pair is its own counter, so buckets never
    contend with each other or with game records.
    """

    def __init__(self, store: GameStore, rules: dict[str, RateLimitRule], enabled: bool = True):
        self._store = store
        self._rules = rules
        self._enabled = enabled

    def _bucket_key(self, operation: str, identifier: str) -> str:
        return f"ratelimit:{operation}:{identifier}"

    async def enforce(self, operation: str, uid: str | None, ip: str | None) -> None:
        """Count one call of operation for the caller.

        Raises:
            InvalidInputError: If neither a uid nor an ip is available.
            RateLimitedError: If any of the caller's buckets is exhausted.
        """
        if not self._enabled:
            return

        rule = self._rules.get(operation)
        if rule is None:
            logger.debug("No rate limit configured for %s", operation)
            return

        identifiers = [
            sanitize_identifier(value)
            for value in (f"uid_{uid}" if uid else None, f"ip_{ip}" if ip else None)
            if value and value.strip()
        ]
        if not identifiers:
            raise InvalidInputError("Missing identifier for rate limit enforcement.")

        for identifier in dict.fromkeys(identifiers):
            key = self._bucket_key(operation, identifier)
            count = await self._store.hit_counter(key, rule.window_seconds)
            if count > rule.max_count:
                logger.warning(
                    "Rate limit exceeded: operation=%s, identifier=%s, count=%d, max=%d",
                    operation,
                    identifier,
                    count,
                    rule.max_count,
                )
                raise RateLimitedError()
