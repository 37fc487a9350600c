"""Tests for RedisGameStore against a recording Redis double.

Critical scenarios tested:
- Hash records are parsed into a versioned snapshot
- Damaged records raise InternalError instead of leaking storage detail
- The compare-and-set script result decides whether a commit landed
- Join codes are claimed with SET NX
- Counter hits pass the window in milliseconds
"""

import pytest

from app.schemas.game_engine import Game
from app.services.game import store as store_module
from app.services.game.errors import InternalError
from app.services.game.store import RedisGameStore

from .conftest import GAME_ID


_NO_OVERRIDE = object()


class FakeRedis:
    """Records calls and mimics the two Lua scripts the store runs."""

    def __init__(self):
        self.hashes: dict[str, dict[str, str]] = {}
        self.strings: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.eval_override = _NO_OVERRIDE

    async def hgetall(self, key: str) -> dict:
        self.calls.append(("hgetall", key))
        return dict(self.hashes.get(key, {}))

    async def get(self, key: str):
        self.calls.append(("get", key))
        return self.strings.get(key)

    async def set(self, key: str, value: str, nx: bool = False):
        self.calls.append(("set", key, value, nx))
        if nx and key in self.strings:
            return None
        self.strings[key] = value
        return "OK"

    async def eval(self, script: str, keys: list[str], args: list[str]):
        self.calls.append(("eval", script, keys, args))
        if self.eval_override is not _NO_OVERRIDE:
            return self.eval_override
        if script == store_module._COMPARE_AND_SET:
            record = self.hashes.get(keys[0])
            current = record.get("version") if record else None
            if (current is None and args[0] == "0") or current == args[0]:
                self.hashes[keys[0]] = {"version": args[1], "state": args[2]}
                return 1
            return 0
        count = int(self.strings.get(keys[0], "0")) + 1
        self.strings[keys[0]] = str(count)
        return count


@pytest.fixture
def redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(redis: FakeRedis) -> RedisGameStore:
    return RedisGameStore(redis)


class TestRead:
    @pytest.mark.asyncio
    async def test_missing_game(self, store: RedisGameStore, redis: FakeRedis):
        assert await store.get(GAME_ID) is None
        assert redis.calls == [("hgetall", f"game:{GAME_ID}")]

    @pytest.mark.asyncio
    async def test_parses_hash_record(
        self, store: RedisGameStore, redis: FakeRedis, joined_game: Game
    ):
        redis.hashes[f"game:{GAME_ID}"] = {
            "version": "3",
            "state": joined_game.model_dump_json(),
        }

        stored = await store.get(GAME_ID)

        assert stored.game_id == GAME_ID
        assert stored.version == 3
        assert stored.game.model_dump() == joined_game.model_dump()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "record",
        [
            {"version": "1"},
            {"state": "{}"},
            {"version": "1", "state": '{"code": "nope"}'},
        ],
    )
    async def test_damaged_record(self, store: RedisGameStore, redis: FakeRedis, record: dict):
        redis.hashes[f"game:{GAME_ID}"] = record

        with pytest.raises(InternalError) as exc_info:
            await store.get(GAME_ID)

        assert exc_info.value.message == "Game data is invalid."


class TestCompareAndSet:
    @pytest.mark.asyncio
    async def test_create_then_update(
        self, store: RedisGameStore, redis: FakeRedis, new_game: Game, joined_game: Game
    ):
        assert await store.compare_and_set(GAME_ID, 0, new_game)
        assert await store.compare_and_set(GAME_ID, 1, joined_game)

        _, script, keys, args = redis.calls[-1]
        assert script == store_module._COMPARE_AND_SET
        assert keys == [f"game:{GAME_ID}"]
        assert args[:2] == ["1", "2"]
        assert (await store.get(GAME_ID)).version == 2

    @pytest.mark.asyncio
    async def test_stale_version_is_refused(
        self, store: RedisGameStore, new_game: Game, joined_game: Game
    ):
        await store.compare_and_set(GAME_ID, 0, new_game)

        assert not await store.compare_and_set(GAME_ID, 0, joined_game)
        stored = await store.get(GAME_ID)
        assert stored.version == 1
        assert stored.game.players.B is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("reply", "committed"), [(1, True), ("1", True), (0, False), (None, False)]
    )
    async def test_script_reply_decides(
        self, store: RedisGameStore, redis: FakeRedis, new_game: Game, reply, committed: bool
    ):
        redis.eval_override = reply

        assert await store.compare_and_set(GAME_ID, 0, new_game) is committed


class TestCodesAndCounters:
    @pytest.mark.asyncio
    async def test_claim_code_uses_set_nx(self, store: RedisGameStore, redis: FakeRedis):
        assert await store.claim_code("ABC234", GAME_ID)
        assert not await store.claim_code("ABC234", "other-game")

        assert redis.calls[0] == ("set", "game_code:ABC234", GAME_ID, True)
        assert await store.find_by_code("ABC234") == GAME_ID
        assert await store.find_by_code("ZZZZZZ") is None

    @pytest.mark.asyncio
    async def test_hit_counter_window_in_milliseconds(
        self, store: RedisGameStore, redis: FakeRedis
    ):
        assert await store.hit_counter("ratelimit:join_game:uid_bob", 60) == 1
        assert await store.hit_counter("ratelimit:join_game:uid_bob", 60) == 2

        _, script, keys, args = redis.calls[-1]
        assert script == store_module._HIT_COUNTER
        assert keys == ["ratelimit:join_game:uid_bob"]
        assert args == ["60000"]
