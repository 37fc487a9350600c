"""REST endpoints for game management and gameplay."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies.auth import CurrentActor
from app.dependencies.game import get_game_service
from app.schemas.game import (
    ActionResponse,
    ClipRequest,
    CreateGameRequest,
    GameCodeResponse,
    GameSnapshotResponse,
    JoinGameRequest,
    JudgeRequest,
)
from app.services.game.errors import GameError
from app.services.game.service import ActionOutcome, GameService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])

GameServiceDep = Annotated[GameService, Depends(get_game_service)]


def _to_http_error(error: GameError) -> HTTPException:
    headers = {"Retry-After": "1"} if error.retryable else None
    return HTTPException(status_code=error.http_status, detail=error.to_dict(), headers=headers)


def _to_action_response(outcome: ActionOutcome) -> ActionResponse:
    return ActionResponse(phase=outcome.phase, turn=outcome.turn, winner=outcome.winner)


@router.post("", response_model=GameCodeResponse, status_code=status.HTTP_201_CREATED)
async def create_game(actor: CurrentActor, request: CreateGameRequest, service: GameServiceDep):
    """Create a new game with the caller as player A.

    Returns:
        GameCodeResponse with the game id and the code to share with the opponent.
    """
    logger.info("POST /games - user: %s", actor.uid)
    try:
        result = await service.create_game(actor, request.name)
    except GameError as e:
        logger.warning("Create game failed for user %s: %s - %s", actor.uid, e.code, e.message)
        raise _to_http_error(e)
    return GameCodeResponse(game_id=result.game_id, code=result.code)


@router.post("/join", response_model=GameCodeResponse)
async def join_game(actor: CurrentActor, request: JoinGameRequest, service: GameServiceDep):
    """Join an existing game by code as player B.

    Raises:
        HTTPException 404: If the code is unknown.
        HTTPException 409: If the game is full or the caller is already in it.
    """
    logger.info("POST /games/join - user: %s, code: %s", actor.uid, request.code)
    try:
        result = await service.join_game(actor, request.code, request.name)
    except GameError as e:
        logger.warning(
            "Join game failed for user %s, code %s: %s - %s",
            actor.uid,
            request.code,
            e.code,
            e.message,
        )
        raise _to_http_error(e)
    return GameCodeResponse(game_id=result.game_id, code=result.code)


@router.get("/{game_id}", response_model=GameSnapshotResponse)
async def get_game(actor: CurrentActor, game_id: str, service: GameServiceDep):
    """Read the current game record.

    Raises:
        HTTPException 403: If the caller is not a player in this game.
        HTTPException 404: If the game does not exist.
    """
    logger.debug("GET /games/%s - user: %s", game_id, actor.uid)
    try:
        stored = await service.get_game(actor, game_id)
    except GameError as e:
        raise _to_http_error(e)
    return GameSnapshotResponse(game_id=stored.game_id, version=stored.version, game=stored.game)


@router.post("/{game_id}/set-clip", response_model=ActionResponse)
async def submit_set_clip(
    actor: CurrentActor, game_id: str, request: ClipRequest, service: GameServiceDep
):
    logger.info("POST /games/%s/set-clip - user: %s", game_id, actor.uid)
    try:
        outcome = await service.submit_set_clip(actor, game_id, request.storage_path)
    except GameError as e:
        raise _to_http_error(e)
    return _to_action_response(outcome)


@router.post("/{game_id}/set-judgement", response_model=ActionResponse)
async def judge_set(
    actor: CurrentActor, game_id: str, request: JudgeRequest, service: GameServiceDep
):
    logger.info(
        "POST /games/%s/set-judgement - user: %s, approve: %s",
        game_id,
        actor.uid,
        request.approve,
    )
    try:
        outcome = await service.judge_set(actor, game_id, request.approve)
    except GameError as e:
        raise _to_http_error(e)
    return _to_action_response(outcome)


@router.post("/{game_id}/response-clip", response_model=ActionResponse)
async def submit_response_clip(
    actor: CurrentActor, game_id: str, request: ClipRequest, service: GameServiceDep
):
    logger.info("POST /games/%s/response-clip - user: %s", game_id, actor.uid)
    try:
        outcome = await service.submit_response_clip(actor, game_id, request.storage_path)
    except GameError as e:
        raise _to_http_error(e)
    return _to_action_response(outcome)


@router.post("/{game_id}/response-judgement", response_model=ActionResponse)
async def judge_response(
    actor: CurrentActor, game_id: str, request: JudgeRequest, service: GameServiceDep
):
    logger.info(
        "POST /games/%s/response-judgement - user: %s, approve: %s",
        game_id,
        actor.uid,
        request.approve,
    )
    try:
        outcome = await service.judge_response(actor, game_id, request.approve)
    except GameError as e:
        raise _to_http_error(e)
    return _to_action_response(outcome)


@router.post("/{game_id}/self-fail/set", response_model=ActionResponse)
async def self_fail_set(actor: CurrentActor, game_id: str, service: GameServiceDep):
    logger.info("POST /games/%s/self-fail/set - user: %s", game_id, actor.uid)
    try:
        outcome = await service.self_fail_set(actor, game_id)
    except GameError as e:
        raise _to_http_error(e)
    return _to_action_response(outcome)


@router.post("/{game_id}/self-fail/response", response_model=ActionResponse)
async def self_fail_response(actor: CurrentActor, game_id: str, service: GameServiceDep):
    logger.info("POST /games/%s/self-fail/response - user: %s", game_id, actor.uid)
    try:
        outcome = await service.self_fail_response(actor, game_id)
    except GameError as e:
        raise _to_http_error(e)
    return _to_action_response(outcome)
