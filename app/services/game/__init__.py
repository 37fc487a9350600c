"""Game service module.

Provides:
- Game initialization (start_game.py)
- Game engine processing (engine/)
- Transactional application against the store (service.py, store.py)
"""

# Re-export from engine for convenience
from .engine import (
    GameAction,
    JoinAction,
    JudgeAction,
    ProcessResult,
    SelfFailAction,
    SubmitClipAction,
    build_action_from_payload,
    process_action,
)
from .start_game import initialize_game, validate_display_name

__all__ = [
    # Initialization
    "initialize_game",
    "validate_display_name",
    # Engine
    "GameAction",
    "ProcessResult",
    "JoinAction",
    "SubmitClipAction",
    "JudgeAction",
    "SelfFailAction",
    "process_action",
    "build_action_from_payload",
]
