"""Shared fixtures for game engine and service tests."""

import os
from datetime import datetime, timezone

import pytest

# Settings are read when app.main is imported; never reach for Upstash in tests.
os.environ.setdefault("GAME_STORE_BACKEND", "memory")

from app.config import Settings  # noqa: E402
from app.schemas.game_engine import Game, PlayerSlot  # noqa: E402
from app.services.game.engine import (  # noqa: E402
    JoinAction,
    JudgeAction,
    SelfFailAction,
    SubmitClipAction,
    process_action,
)
from app.services.game.start_game import initialize_game  # noqa: E402

# Fixed identities for deterministic testing
ALICE = "uid_alice"
BOB = "uid_bob"
MALLORY = "uid_mallory"

GAME_CODE = "ABC234"
GAME_ID = "game-1"
NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

SET_CLIP = f"games/{GAME_ID}/set/trick.mp4"
RESPONSE_CLIP = f"games/{GAME_ID}/response/attempt.mp4"

UID_BY_SLOT = {PlayerSlot.A: ALICE, PlayerSlot.B: BOB}


def apply(game: Game, action, actor_uid: str) -> Game:
    """Run an action that is expected to succeed and return the new game."""
    result = process_action(game, action, actor_uid, now=NOW)
    assert result.success, f"{type(action).__name__} failed: {result.error_code}"
    return result.state


def submit_set(game: Game, actor_uid: str, clip: str = SET_CLIP) -> Game:
    return apply(game, SubmitClipAction(stage="set", clip_ref=clip), actor_uid)


def judge_set(game: Game, actor_uid: str, approve: bool) -> Game:
    return apply(game, JudgeAction(stage="set", approve=approve), actor_uid)


def submit_response(game: Game, actor_uid: str, clip: str = RESPONSE_CLIP) -> Game:
    return apply(game, SubmitClipAction(stage="response", clip_ref=clip), actor_uid)


def judge_response(game: Game, actor_uid: str, approve: bool) -> Game:
    return apply(game, JudgeAction(stage="response", approve=approve), actor_uid)


def play_round(game: Game, landed: bool) -> Game:
    """Current setter sets, responder responds, setter judges the response."""
    setter_uid = UID_BY_SLOT[game.setter]
    responder_uid = UID_BY_SLOT[game.responder]
    game = submit_set(game, setter_uid)
    game = judge_set(game, responder_uid, approve=True)
    game = submit_response(game, responder_uid)
    return judge_response(game, setter_uid, approve=landed)


def hand_set_back(game: Game) -> Game:
    """Current setter concedes the set so the opponent sets next."""
    return apply(game, SelfFailAction(stage="set"), UID_BY_SLOT[game.setter])


@pytest.fixture
def test_settings() -> Settings:
    """Memory-backed settings with rate limiting off."""
    return Settings(GAME_STORE_BACKEND="memory", RATE_LIMIT_ENABLED=False)


@pytest.fixture
def new_game() -> Game:
    """Game created by Alice, waiting for an opponent."""
    return initialize_game(GAME_CODE, ALICE, "Alice", now=NOW)


@pytest.fixture
def joined_game(new_game: Game) -> Game:
    """Game with Bob in slot B, Alice to set."""
    return apply(new_game, JoinAction(name="Bob"), BOB)


@pytest.fixture
def set_submitted(joined_game: Game) -> Game:
    """Alice has submitted a set clip; Bob to judge it."""
    return submit_set(joined_game, ALICE)


@pytest.fixture
def set_approved(set_submitted: Game) -> Game:
    """Bob approved Alice's set; Bob to record a response."""
    return judge_set(set_submitted, BOB, approve=True)


@pytest.fixture
def response_submitted(set_approved: Game) -> Game:
    """Bob has submitted a response clip; Alice to judge it."""
    return submit_response(set_approved, BOB)


@pytest.fixture
def finished_game(joined_game: Game) -> Game:
    """Bob failed three responses to Alice's sets and spelled SK8."""
    game = joined_game
    for _ in range(3):
        game = play_round(game, landed=False)
        if game.winner is None:
            game = hand_set_back(game)
    return game
