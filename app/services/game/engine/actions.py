"""Game action types - explicit user inputs separated from game state."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from app.schemas.game_engine import ClipStage, DisplayName


class JoinAction(BaseModel):
    """Second player takes slot B."""

    action_type: Literal["join"] = "join"
    name: DisplayName = Field(..., description="Display name")


class SubmitClipAction(BaseModel):
    """Shooter attaches a recorded clip to the current attempt."""

    action_type: Literal["submit_clip"] = "submit_clip"
    stage: ClipStage
    clip_ref: str = Field(..., min_length=1, description="Validated storage path of the clip")


class JudgeAction(BaseModel):
    """Judge approves or declines the clip under review."""

    action_type: Literal["judge"] = "judge"
    stage: ClipStage
    approve: bool


class SelfFailAction(BaseModel):
    """Shooter concedes the attempt without recording."""

    action_type: Literal["self_fail"] = "self_fail"
    stage: ClipStage


# Union type for all game actions
GameAction = Annotated[
    JoinAction | SubmitClipAction | JudgeAction | SelfFailAction,
    Field(discriminator="action_type"),
]


def build_action_from_payload(payload: dict) -> GameAction:
    """Build a typed action from a raw payload dict.

    Args:
        payload: Dict with 'action_type' key and action-specific fields.

    Returns:
        The appropriate GameAction subtype.

    Raises:
        ValueError: If action_type is missing or unknown.
        pydantic.ValidationError: If the fields do not match the action type.
    """
    action_type = payload.get("action_type")

    if action_type == "join":
        return JoinAction.model_validate(payload)
    elif action_type == "submit_clip":
        return SubmitClipAction.model_validate(payload)
    elif action_type == "judge":
        return JudgeAction.model_validate(payload)
    elif action_type == "self_fail":
        return SelfFailAction.model_validate(payload)
    else:
        raise ValueError(f"Unknown action type: {action_type}")
