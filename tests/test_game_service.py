"""Tests for GameService transactions against the in-memory store.

Critical scenarios tested:
- Create and join through codes
- Errors raised for rejected actions, with no write
- Concurrent set submissions: exactly one wins
- Contention is reported after the retry budget is spent
- Committed transitions reach the live feed
"""

import asyncio

import pytest
import pytest_asyncio

from app.config import Settings
from app.schemas.game_engine import Game, GamePhase, PlayerSlot
from app.services.game.errors import (
    AlreadyFullError,
    AlreadyJoinedError,
    AlreadySubmittedError,
    ContentionError,
    InvalidInputError,
    InvalidPhaseError,
    NotFoundError,
    NotParticipantError,
    RateLimitedError,
    UnauthenticatedError,
    WrongRoleError,
)
from app.services.game.service import Actor, GameService
from app.services.game.store import InMemoryGameStore

from .conftest import ALICE, BOB, MALLORY

ALICE_ACTOR = Actor(uid=ALICE, ip="10.0.0.1")
BOB_ACTOR = Actor(uid=BOB, ip="10.0.0.2")
MALLORY_ACTOR = Actor(uid=MALLORY, ip="10.0.0.3")


class ConflictingStore(InMemoryGameStore):
    """Store whose commits always lose the race after creation."""

    async def compare_and_set(self, game_id: str, expected_version: int, game: Game) -> bool:
        if expected_version == 0:
            return await super().compare_and_set(game_id, expected_version, game)
        return False


def _set_clip(game_id: str, name: str = "trick.mp4") -> str:
    return f"games/{game_id}/set/{name}"


def _response_clip(game_id: str, name: str = "attempt.mp4") -> str:
    return f"games/{game_id}/response/{name}"


@pytest.fixture
def store() -> InMemoryGameStore:
    return InMemoryGameStore()


@pytest.fixture
def service(store: InMemoryGameStore, test_settings: Settings) -> GameService:
    return GameService(store=store, settings=test_settings)


@pytest_asyncio.fixture
async def game_id(service: GameService) -> str:
    created = await service.create_game(ALICE_ACTOR, "Alice")
    await service.join_game(BOB_ACTOR, created.code.lower(), "Bob")
    return created.game_id


class TestCreateAndJoin:
    @pytest.mark.asyncio
    async def test_create_game(self, service: GameService, store: InMemoryGameStore):
        created = await service.create_game(ALICE_ACTOR, "  Alice ")

        assert len(created.code) == 6
        stored = await service.get_game(ALICE_ACTOR, created.game_id)
        assert stored.version == 1
        assert stored.game.code == created.code
        assert stored.game.players.A.name == "Alice"
        assert stored.game.players.B is None
        assert await store.find_by_code(created.code) == created.game_id

    @pytest.mark.asyncio
    async def test_join_game_by_code(self, service: GameService):
        created = await service.create_game(ALICE_ACTOR, "Alice")

        joined = await service.join_game(BOB_ACTOR, created.code.lower(), "Bob")

        assert joined.game_id == created.game_id
        assert joined.code == created.code
        stored = await service.get_game(ALICE_ACTOR, created.game_id)
        assert stored.version == 2
        assert stored.game.players.B.uid == BOB
        assert stored.game.phase == GamePhase.SET_RECORD
        assert stored.game.turn == PlayerSlot.A

    @pytest.mark.asyncio
    async def test_join_unknown_code(self, service: GameService):
        with pytest.raises(NotFoundError):
            await service.join_game(BOB_ACTOR, "ZZZZZZ", "Bob")

    @pytest.mark.asyncio
    async def test_join_full_game(self, service: GameService, game_id: str):
        code = (await service.get_game(ALICE_ACTOR, game_id)).game.code

        with pytest.raises(AlreadyFullError):
            await service.join_game(MALLORY_ACTOR, code, "Mallory")

    @pytest.mark.asyncio
    async def test_creator_cannot_join_own_game(self, service: GameService):
        created = await service.create_game(ALICE_ACTOR, "Alice")

        with pytest.raises(AlreadyJoinedError):
            await service.join_game(ALICE_ACTOR, created.code, "Alice")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "x" * 61])
    async def test_invalid_name(self, service: GameService, name: str):
        with pytest.raises(InvalidInputError):
            await service.create_game(ALICE_ACTOR, name)

    @pytest.mark.asyncio
    async def test_malformed_code(self, service: GameService):
        with pytest.raises(InvalidInputError):
            await service.join_game(BOB_ACTOR, "AB", "Bob")

    @pytest.mark.asyncio
    async def test_requires_identity(self, service: GameService):
        with pytest.raises(UnauthenticatedError):
            await service.create_game(Actor(uid=None), "Alice")


class TestGameplay:
    @pytest.mark.asyncio
    async def test_full_round(self, service: GameService, game_id: str):
        outcome = await service.submit_set_clip(ALICE_ACTOR, game_id, _set_clip(game_id))
        assert outcome.phase == GamePhase.SET_JUDGE

        outcome = await service.judge_set(BOB_ACTOR, game_id, True)
        assert outcome.phase == GamePhase.RESP_RECORD

        outcome = await service.submit_response_clip(BOB_ACTOR, game_id, _response_clip(game_id))
        assert outcome.phase == GamePhase.RESP_JUDGE

        outcome = await service.judge_response(ALICE_ACTOR, game_id, False)
        assert outcome.phase == GamePhase.SET_RECORD
        assert outcome.turn == PlayerSlot.B
        assert outcome.winner is None
        assert outcome.game.players.B.letters == "S"

        stored = await service.get_game(ALICE_ACTOR, game_id)
        assert stored.version == 6
        assert stored.game.model_dump() == outcome.game.model_dump()

    @pytest.mark.asyncio
    async def test_self_fail_operations(self, service: GameService, game_id: str):
        outcome = await service.self_fail_set(ALICE_ACTOR, game_id)
        assert outcome.turn == PlayerSlot.B

        await service.submit_set_clip(BOB_ACTOR, game_id, _set_clip(game_id))
        await service.judge_set(ALICE_ACTOR, game_id, True)
        outcome = await service.self_fail_response(ALICE_ACTOR, game_id)

        assert outcome.turn == PlayerSlot.A
        assert outcome.game.players.A.letters == "S"

    @pytest.mark.asyncio
    async def test_rejection_does_not_write(self, service: GameService, game_id: str):
        before = await service.get_game(ALICE_ACTOR, game_id)

        with pytest.raises(WrongRoleError):
            await service.submit_set_clip(BOB_ACTOR, game_id, _set_clip(game_id))
        with pytest.raises(NotParticipantError):
            await service.self_fail_set(MALLORY_ACTOR, game_id)

        after = await service.get_game(ALICE_ACTOR, game_id)
        assert after.version == before.version
        assert after.game.model_dump() == before.game.model_dump()

    @pytest.mark.asyncio
    async def test_clip_outside_game_is_rejected(self, service: GameService, game_id: str):
        with pytest.raises(InvalidInputError):
            await service.submit_set_clip(ALICE_ACTOR, game_id, _set_clip("another-game"))

    @pytest.mark.asyncio
    async def test_unknown_game(self, service: GameService):
        with pytest.raises(NotFoundError):
            await service.self_fail_set(ALICE_ACTOR, "missing")
        with pytest.raises(NotFoundError):
            await service.get_game(ALICE_ACTOR, "missing")


class TestReadAccess:
    @pytest.mark.asyncio
    async def test_players_can_read(self, service: GameService, game_id: str):
        for actor in (ALICE_ACTOR, BOB_ACTOR):
            stored = await service.get_game(actor, game_id)
            assert stored.game_id == game_id

    @pytest.mark.asyncio
    async def test_outsider_cannot_read(self, service: GameService, game_id: str):
        with pytest.raises(NotParticipantError):
            await service.get_game(MALLORY_ACTOR, game_id)

    @pytest.mark.asyncio
    async def test_read_requires_identity(self, service: GameService, game_id: str):
        with pytest.raises(UnauthenticatedError):
            await service.get_game(Actor(uid=None), game_id)


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_set_submissions(self, service: GameService, game_id: str):
        results = await asyncio.gather(
            service.submit_set_clip(ALICE_ACTOR, game_id, _set_clip(game_id, "one.mp4")),
            service.submit_set_clip(ALICE_ACTOR, game_id, _set_clip(game_id, "two.mp4")),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], AlreadySubmittedError)

        stored = await service.get_game(ALICE_ACTOR, game_id)
        assert stored.game.current.set_clip == successes[0].game.current.set_clip
        assert stored.version == 3

    @pytest.mark.asyncio
    async def test_contention_after_retry_budget(self, test_settings: Settings):
        settings = test_settings.model_copy(update={"TX_MAX_ATTEMPTS": 3})
        service = GameService(store=ConflictingStore(), settings=settings)
        created = await service.create_game(ALICE_ACTOR, "Alice")

        with pytest.raises(ContentionError) as exc_info:
            await service.join_game(BOB_ACTOR, created.code, "Bob")

        assert exc_info.value.retryable


class TestRateLimits:
    @pytest.mark.asyncio
    async def test_create_is_rate_limited(self, store: InMemoryGameStore):
        settings = Settings(
            GAME_STORE_BACKEND="memory",
            RATE_LIMITS={"create_game": {"window_seconds": 60, "max_count": 1}},
        )
        service = GameService(store=store, settings=settings)

        await service.create_game(ALICE_ACTOR, "Alice")
        with pytest.raises(RateLimitedError):
            await service.create_game(ALICE_ACTOR, "Alice")


class TestFeed:
    @pytest.mark.asyncio
    async def test_committed_transitions_are_published(self, service: GameService, game_id: str):
        published = []

        async def feed(game_id, game, events):
            published.append((game_id, game.phase, [event.event_type for event in events]))

        service.set_feed(feed)
        await service.submit_set_clip(ALICE_ACTOR, game_id, _set_clip(game_id))

        assert published == [(game_id, GamePhase.SET_JUDGE, ["clip_submitted"])]

    @pytest.mark.asyncio
    async def test_feed_failure_does_not_fail_action(self, service: GameService, game_id: str):
        async def broken_feed(game_id, game, events):
            raise RuntimeError("socket gone")

        service.set_feed(broken_feed)
        outcome = await service.submit_set_clip(ALICE_ACTOR, game_id, _set_clip(game_id))

        assert outcome.phase == GamePhase.SET_JUDGE

    @pytest.mark.asyncio
    async def test_rejected_actions_are_not_published(self, service: GameService, game_id: str):
        published = []

        async def feed(game_id, game, events):
            published.append(game_id)

        service.set_feed(feed)
        with pytest.raises(InvalidPhaseError):
            await service.judge_set(ALICE_ACTOR, game_id, True)

        assert published == []
