"""Game engine module - pure functional game logic.

This module provides the core game engine with:
- Action types for explicit user inputs
- Event types for live-feed broadcasts
- ProcessResult pattern for error handling
- Modular processing logic

Usage:
    from app.services.game.engine import (
        process_action,
        ProcessResult,
        SubmitClipAction,
    )

    # Process an action
    result = process_action(game, SubmitClipAction(stage="set", clip_ref=path), uid)

    if result.success:
        new_game = result.state
        events = result.events  # Broadcast these via WebSocket
    else:
        # Handle error
        print(f"Error: {result.error_code} - {result.error_message}")
"""

# Actions - explicit user inputs
from .actions import (
    GameAction,
    JoinAction,
    JudgeAction,
    SelfFailAction,
    SubmitClipAction,
    build_action_from_payload,
)

# Events - for WebSocket broadcasts
from .events import (
    AnyGameEvent,
    ClipSubmitted,
    GameEvent,
    GameWon,
    LetterGained,
    PlayerJoined,
    ResponseJudged,
    SelfFailed,
    SetJudged,
    TurnPassed,
)

# Letters
from .letters import next_letters

# Main processing
from .process import process_action

# Result types
from .validation import ProcessResult, ValidationResult, validate_action

__all__ = [
    # Actions
    "GameAction",
    "JoinAction",
    "SubmitClipAction",
    "JudgeAction",
    "SelfFailAction",
    "build_action_from_payload",
    # Events
    "GameEvent",
    "AnyGameEvent",
    "PlayerJoined",
    "ClipSubmitted",
    "SetJudged",
    "ResponseJudged",
    "SelfFailed",
    "LetterGained",
    "TurnPassed",
    "GameWon",
    # Processing
    "process_action",
    "next_letters",
    # Validation
    "ProcessResult",
    "ValidationResult",
    "validate_action",
]
