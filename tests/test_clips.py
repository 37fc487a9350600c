"""Tests for clip path validation."""

import pytest

from app.schemas.game_engine import ClipStage
from app.services.game.clips import validate_clip_path
from app.services.game.errors import InvalidInputError

GAME_ID = "game-1"


class TestValidClipPaths:
    @pytest.mark.parametrize(
        ("path", "stage"),
        [
            ("games/game-1/set/trick.mp4", ClipStage.SET),
            ("games/game-1/set/nested/trick.MOV", ClipStage.SET),
            ("games/game-1/response/attempt.webm", ClipStage.RESPONSE),
        ],
    )
    def test_accepted(self, path: str, stage: ClipStage):
        assert validate_clip_path(GAME_ID, path, stage) == path

    def test_path_is_trimmed(self):
        path = validate_clip_path(GAME_ID, "  games/game-1/set/trick.mp4 ", ClipStage.SET)

        assert path == "games/game-1/set/trick.mp4"

    def test_custom_extensions(self):
        path = validate_clip_path(GAME_ID, "games/game-1/set/a.mkv", ClipStage.SET, ["mkv"])

        assert path.endswith(".mkv")


class TestRejectedClipPaths:
    @pytest.mark.parametrize(
        ("path", "stage", "message"),
        [
            ("games/other/set/trick.mp4", ClipStage.SET, "scoped to the game"),
            ("uploads/game-1/set/trick.mp4", ClipStage.SET, "scoped to the game"),
            ("games/game-1/set/../../x.mp4", ClipStage.SET, "invalid segments"),
            ("games/game-1/set.mp4", ClipStage.SET, "incomplete"),
            ("games/game-1/set//trick.mp4", ClipStage.SET, "incomplete"),
            ("games/game-1/response/trick.mp4", ClipStage.SET, "under the set folder"),
            ("games/game-1/set/trick.mp4", ClipStage.RESPONSE, "under the response folder"),
            ("games/game-1/set/trick.gif", ClipStage.SET, "Unsupported video type"),
            ("games/game-1/set/trick", ClipStage.SET, "Unsupported video type"),
        ],
    )
    def test_rejected(self, path: str, stage: ClipStage, message: str):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_clip_path(GAME_ID, path, stage)

        assert message in exc_info.value.message
        assert exc_info.value.code == "INVALID_INPUT"
        assert not exc_info.value.retryable
