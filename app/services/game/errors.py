"""Typed failures raised by the game engine and the game service.

Each error carries a stable code for clients, a human-readable message that
never leaks storage detail, whether the caller may retry, and the HTTP status
the REST layer maps it to.
"""


class GameError(Exception):
    code = "GAME_ERROR"
    default_message = "The action could not be completed"
    retryable = False
    http_status = 400

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error_code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


class UnauthenticatedError(GameError):
    code = "UNAUTHENTICATED"
    default_message = "Authentication required"
    http_status = 401


class NotParticipantError(GameError):
    code = "NOT_PARTICIPANT"
    default_message = "You are not a participant in this game"
    http_status = 403


class WrongRoleError(GameError):
    code = "WRONG_ROLE"
    default_message = "It is not your role to take this action"
    http_status = 403


class InvalidPhaseError(GameError):
    code = "INVALID_PHASE"
    default_message = "This action is not available right now"
    http_status = 409


class AlreadySubmittedError(GameError):
    code = "ALREADY_SUBMITTED"
    default_message = "Clip already submitted"
    http_status = 409


class MissingClipError(GameError):
    code = "MISSING_CLIP"
    default_message = "There is no clip to judge"
    http_status = 409


class NotFoundError(GameError):
    code = "NOT_FOUND"
    default_message = "Game not found"
    http_status = 404


class AlreadyFullError(GameError):
    code = "ALREADY_FULL"
    default_message = "Game is already full"
    http_status = 409


class AlreadyJoinedError(GameError):
    code = "ALREADY_JOINED"
    default_message = "You are already in this game"
    http_status = 409


class InvalidInputError(GameError):
    code = "INVALID_INPUT"
    default_message = "Invalid input"
    http_status = 422


class RateLimitedError(GameError):
    code = "RATE_LIMITED"
    default_message = "Too many requests. Please slow down."
    retryable = True
    http_status = 429


class ContentionError(GameError):
    code = "CONTENTION"
    default_message = "The game is busy, please try again"
    retryable = True
    http_status = 503


class InternalError(GameError):
    code = "INTERNAL"
    default_message = "Game data is inconsistent"
    http_status = 500
