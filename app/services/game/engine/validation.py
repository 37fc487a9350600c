"""Validation layer for game actions and ProcessResult pattern.

Separates validation from processing logic:
- validate_action() checks if an action is legal given current state
- ProcessResult carries either the new state or a typed GameError
"""

import logging
from dataclasses import dataclass, field

from app.schemas.game_engine import (
    ClipStage,
    Game,
    GamePhase,
    PendingEntry,
    PlayerSlot,
)
from app.services.game.errors import (
    AlreadyFullError,
    AlreadyJoinedError,
    AlreadySubmittedError,
    GameError,
    InternalError,
    InvalidPhaseError,
    MissingClipError,
    NotParticipantError,
    WrongRoleError,
)

from .actions import (
    GameAction,
    JoinAction,
    JudgeAction,
    SelfFailAction,
    SubmitClipAction,
)
from .events import AnyGameEvent

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Result of processing a game action.

    The engine never raises for a rejected action; callers decide whether to
    raise result.error.
    """

    state: Game | None = None
    events: list[AnyGameEvent] = field(default_factory=list)
    success: bool = True
    error: GameError | None = None

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error else None

    @property
    def error_message(self) -> str | None:
        return self.error.message if self.error else None

    @classmethod
    def ok(
        cls,
        state: Game,
        events: list[AnyGameEvent] | None = None,
    ) -> "ProcessResult":
        """Create a successful result with new state and events."""
        return cls(
            state=state,
            events=events or [],
            success=True,
        )

    @classmethod
    def failure(cls, error: GameError) -> "ProcessResult":
        """Create a failure result carrying the rejection."""
        return cls(
            state=None,
            events=[],
            success=False,
            error=error,
        )


@dataclass
class ValidationResult:
    """Result of validating an action before processing."""

    is_valid: bool = True
    error: GameError | None = None
    actor_slot: PlayerSlot | None = None

    @classmethod
    def ok(cls, actor_slot: PlayerSlot | None = None) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(is_valid=True, actor_slot=actor_slot)

    @classmethod
    def reject(cls, error: GameError) -> "ValidationResult":
        """Create a validation failure."""
        return cls(is_valid=False, error=error)


# (phase the action needs, role that may take it, message when phase is wrong)
_SUBMIT_RULES = {
    ClipStage.SET: (GamePhase.SET_RECORD, "setter", "You cannot submit a set clip right now"),
    ClipStage.RESPONSE: (GamePhase.RESP_RECORD, "responder", "Not awaiting a response clip"),
}
_JUDGE_RULES = {
    ClipStage.SET: (GamePhase.SET_JUDGE, "responder", "Not awaiting set approval"),
    ClipStage.RESPONSE: (GamePhase.RESP_JUDGE, "setter", "Not awaiting response judgement"),
}
_SELF_FAIL_RULES = {
    ClipStage.SET: (
        GamePhase.SET_RECORD,
        "setter",
        "Self fail is only available during your set",
    ),
    ClipStage.RESPONSE: (
        GamePhase.RESP_RECORD,
        "responder",
        "Self fail is only available while recording a response",
    ),
}
_ROLE_MESSAGES = {
    (SubmitClipAction, ClipStage.SET): "Only the setter can submit a set clip",
    (SubmitClipAction, ClipStage.RESPONSE): "Only the responder can submit a response clip",
    (JudgeAction, ClipStage.SET): "Only the opponent can judge the set",
    (JudgeAction, ClipStage.RESPONSE): "Only the setter can judge the response",
    (SelfFailAction, ClipStage.SET): "Only the setter can self-fail the set",
    (SelfFailAction, ClipStage.RESPONSE): "Only the responder can self-fail the response",
}


def _validate_join(game: Game, actor_uid: str) -> ValidationResult:
    if game.players.A.uid == actor_uid:
        logger.warning("Validation failed: ALREADY_JOINED (creator), uid=%s", actor_uid)
        return ValidationResult.reject(AlreadyJoinedError("You already created this game"))
    if game.players.B is not None:
        if game.players.B.uid == actor_uid:
            logger.warning("Validation failed: ALREADY_JOINED, uid=%s", actor_uid)
            return ValidationResult.reject(AlreadyJoinedError())
        logger.warning("Validation failed: ALREADY_FULL, code=%s", game.code)
        return ValidationResult.reject(AlreadyFullError())
    return ValidationResult.ok(PlayerSlot.B)


def _role_slot(game: Game, role: str) -> PlayerSlot:
    return game.setter if role == "setter" else game.responder


def validate_action(
    game: Game,
    action: GameAction,
    actor_uid: str,
) -> ValidationResult:
    """Validate an action before processing.

    Checks, in order:
    - Actor occupies a slot
    - Game is not over
    - Clip being submitted is not already present
    - Opponent has joined
    - Phase allows this action
    - Actor holds the role the action needs
    - Clip under judgement exists
    - Pending history entry exists when a response is being resolved

    Args:
        game: Current game state.
        action: The action to validate.
        actor_uid: Identity of the caller.

    Returns:
        ValidationResult with the actor's slot on success.
    """
    action_type = type(action).__name__
    logger.debug(
        "Validating action: type=%s, actor=%s, phase=%s",
        action_type,
        actor_uid,
        game.phase.value,
    )

    if isinstance(action, JoinAction):
        return _validate_join(game, actor_uid)

    actor_slot = game.slot_for(actor_uid)
    if actor_slot is None:
        logger.warning("Validation failed: NOT_PARTICIPANT, actor=%s", actor_uid)
        return ValidationResult.reject(NotParticipantError())

    if game.is_finished:
        logger.warning("Validation failed: INVALID_PHASE (game over), winner=%s", game.winner)
        return ValidationResult.reject(InvalidPhaseError("The game is already over"))

    if isinstance(action, SubmitClipAction):
        existing = (
            game.current.set_clip
            if action.stage is ClipStage.SET
            else game.current.response_clip
        )
        if existing:
            logger.warning("Validation failed: ALREADY_SUBMITTED, stage=%s", action.stage.value)
            return ValidationResult.reject(
                AlreadySubmittedError(f"{action.stage.value.capitalize()} clip already submitted")
            )
        rules = _SUBMIT_RULES
    elif isinstance(action, JudgeAction):
        rules = _JUDGE_RULES
    elif isinstance(action, SelfFailAction):
        rules = _SELF_FAIL_RULES
    else:
        logger.error("Unknown action type received: %s", action_type)
        return ValidationResult.reject(InternalError(f"Unknown action type: {action_type}"))

    if not game.is_full:
        logger.warning("Validation failed: INVALID_PHASE (waiting for opponent)")
        return ValidationResult.reject(InvalidPhaseError("Waiting for an opponent to join"))

    required_phase, role, phase_message = rules[action.stage]
    if game.phase is not required_phase:
        logger.warning(
            "Validation failed: INVALID_PHASE, expected=%s, got=%s",
            required_phase.value,
            game.phase.value,
        )
        return ValidationResult.reject(InvalidPhaseError(phase_message))

    if actor_slot is not _role_slot(game, role):
        logger.warning(
            "Validation failed: WRONG_ROLE, required=%s, actor_slot=%s",
            role,
            actor_slot.value,
        )
        return ValidationResult.reject(WrongRoleError(_ROLE_MESSAGES[(type(action), action.stage)]))

    if isinstance(action, JudgeAction):
        if not game.current.set_clip:
            return ValidationResult.reject(MissingClipError("No set clip to judge"))
        if action.stage is ClipStage.RESPONSE and not game.current.response_clip:
            return ValidationResult.reject(MissingClipError("Missing clips to judge"))

    resolves_pending = (
        isinstance(action, JudgeAction) and action.stage is ClipStage.RESPONSE
    ) or (isinstance(action, SelfFailAction) and action.stage is ClipStage.RESPONSE)
    if resolves_pending and not isinstance(game.last_entry, PendingEntry):
        logger.error(
            "Data integrity violation: no pending set approval, code=%s, history_len=%d",
            game.code,
            len(game.history),
        )
        return ValidationResult.reject(InternalError("Set approval record missing"))

    logger.debug("Action validated successfully: type=%s", action_type)
    return ValidationResult.ok(actor_slot)
