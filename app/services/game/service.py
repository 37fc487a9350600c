"""Game service: runs engine transitions as atomic store transactions."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import ValidationError

from app.config import Settings, get_settings
from app.schemas.game_engine import ClipStage, Game, GamePhase, PlayerSlot
from app.services.game.clips import validate_clip_path
from app.services.game.codes import generate_unique_code, normalize_code
from app.services.game.engine import (
    AnyGameEvent,
    GameAction,
    JoinAction,
    JudgeAction,
    SelfFailAction,
    SubmitClipAction,
    process_action,
)
from app.services.game.errors import (
    ContentionError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    NotParticipantError,
    UnauthenticatedError,
)
from app.services.game.rate_limit import RateLimiter
from app.services.game.start_game import initialize_game, validate_display_name
from app.services.game.store import GameStore, StoredGame

logger = logging.getLogger(__name__)

# Called after every committed transition: (game_id, game, events)
FeedPublisher = Callable[[str, Game, list[AnyGameEvent]], Awaitable[None]]


@dataclass
class Actor:
    """Caller identity as supplied by the identity provider."""

    uid: str | None
    ip: str | None = None


@dataclass
class CreateGameResult:
    game_id: str
    code: str


@dataclass
class JoinGameResult:
    game_id: str
    code: str


@dataclass
class ActionOutcome:
    """Thin summary of a committed transition."""

    game_id: str
    phase: GamePhase
    turn: PlayerSlot
    winner: PlayerSlot | None
    game: Game
    events: list[AnyGameEvent] = field(default_factory=list)


def operation_name(action: GameAction) -> str:
    """Map an action to the operation name used for rate limiting."""
    if isinstance(action, JoinAction):
        return "join_game"
    if isinstance(action, SubmitClipAction):
        return f"submit_{action.stage.value}_clip"
    if isinstance(action, JudgeAction):
        return f"judge_{action.stage.value}"
    if isinstance(action, SelfFailAction):
        return f"self_fail_{action.stage.value}"
    raise InternalError(f"Unknown action type: {type(action).__name__}")


class GameService:
    """Entry point for the eight game operations.

    Each gameplay operation is one optimistic transaction: read the game and
    its version, run the engine, and commit the new record only if nobody
    committed in between. Conflicts are retried from a fresh snapshot.
    """

    def __init__(
        self,
        store: GameStore,
        settings: Settings | None = None,
        rate_limiter: RateLimiter | None = None,
        feed: FeedPublisher | None = None,
    ):
        self._settings = settings or get_settings()
        self._store = store
        self._rate_limiter = rate_limiter or RateLimiter(
            store,
            rules={
                op: rule
                for op in (
                    "create_game",
                    "join_game",
                    "submit_set_clip",
                    "judge_set",
                    "submit_response_clip",
                    "judge_response",
                    "self_fail_set",
                    "self_fail_response",
                )
                if (rule := self._settings.rate_limit_for(op)) is not None
            },
            enabled=self._settings.RATE_LIMIT_ENABLED,
        )
        self._feed = feed

    def set_feed(self, feed: FeedPublisher | None) -> None:
        self._feed = feed

    def _require_uid(self, actor: Actor) -> str:
        if not actor.uid:
            logger.warning("Rejected unauthenticated call")
            raise UnauthenticatedError()
        return actor.uid

    async def create_game(self, actor: Actor, name: str) -> CreateGameResult:
        """Create a game with the caller in slot A and a fresh join code."""
        uid = self._require_uid(actor)
        await self._rate_limiter.enforce("create_game", uid, actor.ip)

        try:
            display_name = validate_display_name(name)
        except ValueError as e:
            raise InvalidInputError(str(e))

        game_id = self._store.new_game_id()
        code = await generate_unique_code(
            lambda candidate: self._store.claim_code(candidate, game_id),
            max_attempts=self._settings.CODE_MAX_ATTEMPTS,
        )

        game = initialize_game(code, uid, display_name)
        if not await self._store.compare_and_set(game_id, 0, game):
            logger.error("Fresh game id %s already had a record", game_id)
            raise InternalError("Failed to create game.")

        logger.info("Game created: game_id=%s, code=%s, uid=%s", game_id, code, uid)
        await self._publish(game_id, game, [])
        return CreateGameResult(game_id=game_id, code=code)

    async def join_game(self, actor: Actor, code: str, name: str) -> JoinGameResult:
        """Take slot B in the game registered under code."""
        uid = self._require_uid(actor)
        await self._rate_limiter.enforce("join_game", uid, actor.ip)

        normalized = normalize_code(code)
        try:
            action = JoinAction(name=name)
        except ValidationError:
            raise InvalidInputError("Name must be between 1 and 60 characters.")

        game_id = await self._store.find_by_code(normalized)
        if game_id is None:
            logger.warning("Join failed: no game for code %s", normalized)
            raise NotFoundError()

        await self._transact(game_id, action, uid)
        logger.info("Game joined: game_id=%s, code=%s, uid=%s", game_id, normalized, uid)
        return JoinGameResult(game_id=game_id, code=normalized)

    async def submit_set_clip(self, actor: Actor, game_id: str, clip_ref: str) -> ActionOutcome:
        return await self.apply_action(
            actor, game_id, SubmitClipAction(stage=ClipStage.SET, clip_ref=clip_ref)
        )

    async def judge_set(self, actor: Actor, game_id: str, approve: bool) -> ActionOutcome:
        return await self.apply_action(
            actor, game_id, JudgeAction(stage=ClipStage.SET, approve=approve)
        )

    async def submit_response_clip(
        self, actor: Actor, game_id: str, clip_ref: str
    ) -> ActionOutcome:
        return await self.apply_action(
            actor, game_id, SubmitClipAction(stage=ClipStage.RESPONSE, clip_ref=clip_ref)
        )

    async def judge_response(self, actor: Actor, game_id: str, approve: bool) -> ActionOutcome:
        return await self.apply_action(
            actor, game_id, JudgeAction(stage=ClipStage.RESPONSE, approve=approve)
        )

    async def self_fail_set(self, actor: Actor, game_id: str) -> ActionOutcome:
        return await self.apply_action(actor, game_id, SelfFailAction(stage=ClipStage.SET))

    async def self_fail_response(self, actor: Actor, game_id: str) -> ActionOutcome:
        return await self.apply_action(actor, game_id, SelfFailAction(stage=ClipStage.RESPONSE))

    async def apply_action(self, actor: Actor, game_id: str, action: GameAction) -> ActionOutcome:
        """Authenticate, rate limit and run one gameplay action.

        Raises:
            GameError: Any rejection from the limiter, clip validation, the
                engine or the store.
        """
        uid = self._require_uid(actor)
        if isinstance(action, JoinAction):
            raise InvalidInputError("Join a game with its code.")
        if not game_id or not game_id.strip():
            raise InvalidInputError("Game id is required.")

        await self._rate_limiter.enforce(operation_name(action), uid, actor.ip)

        if isinstance(action, SubmitClipAction):
            clip_ref = validate_clip_path(
                game_id,
                action.clip_ref,
                action.stage,
                self._settings.CLIP_EXTENSIONS,
            )
            action = action.model_copy(update={"clip_ref": clip_ref})

        return await self._transact(game_id, action, uid)

    async def get_game(self, actor: Actor, game_id: str) -> StoredGame:
        """Read a game on behalf of one of its players.

        Raises:
            UnauthenticatedError: If the actor has no uid.
            NotFoundError: If the game does not exist.
            NotParticipantError: If the actor holds neither slot.
        """
        uid = self._require_uid(actor)
        stored = await self._store.get(game_id)
        if stored is None:
            raise NotFoundError()
        if stored.game.slot_for(uid) is None:
            logger.warning("User %s denied read of game %s", uid, game_id)
            raise NotParticipantError()
        return stored

    async def _transact(self, game_id: str, action: GameAction, uid: str) -> ActionOutcome:
        """Run the engine against the latest snapshot and commit atomically."""
        max_attempts = self._settings.TX_MAX_ATTEMPTS
        for attempt in range(1, max_attempts + 1):
            stored = await self._store.get(game_id)
            if stored is None:
                logger.warning("Game %s not found", game_id)
                raise NotFoundError()

            result = process_action(stored.game, action, uid, now=datetime.now(timezone.utc))
            if not result.success:
                raise result.error

            if await self._store.compare_and_set(game_id, stored.version, result.state):
                logger.info(
                    "Transition committed: game_id=%s, version=%d, phase=%s, attempt=%d",
                    game_id,
                    stored.version + 1,
                    result.state.phase.value,
                    attempt,
                )
                await self._publish(game_id, result.state, result.events)
                return ActionOutcome(
                    game_id=game_id,
                    phase=result.state.phase,
                    turn=result.state.turn,
                    winner=result.state.winner,
                    game=result.state,
                    events=result.events,
                )

            logger.info(
                "Transaction conflict on game %s, retrying (attempt %d/%d)",
                game_id,
                attempt,
                max_attempts,
            )

        logger.warning("Giving up on game %s after %d conflicting attempts", game_id, max_attempts)
        raise ContentionError()

    async def _publish(self, game_id: str, game: Game, events: list[AnyGameEvent]) -> None:
        if self._feed is None:
            return
        try:
            await self._feed(game_id, game, events)
        except Exception as e:
            # The transition is already committed; observers resync on reconnect.
            logger.warning("Failed to publish update for game %s: %s", game_id, e)
