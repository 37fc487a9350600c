import asyncio
import contextlib
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from fastapi import WebSocket

from app.config import get_settings
from app.schemas.game_engine import Game
from app.schemas.ws import (
    ConnectedPayload,
    GameEventsPayload,
    GameStatePayload,
    MessageType,
    WSCloseCode,
    WSServerMessage,
)
from app.services.game.engine import AnyGameEvent

logger = logging.getLogger(__name__)


def game_state_message(game_id: str, game: Game) -> WSServerMessage:
    return WSServerMessage(
        type=MessageType.GAME_STATE,
        payload=GameStatePayload(game_id=game_id, game=game.model_dump(mode="json")).model_dump(),
    )


@dataclass
class Connection:
    """Represents an active WebSocket connection watching one game."""

    connection_id: str
    websocket: WebSocket
    user_id: str
    game_id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_heartbeat: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ConnectionManager:
    """Tracks live-feed subscribers and pushes committed game updates.

    Local storage:
        - _connections: connection_id -> Connection
        - _game_connections: game_id -> set of connection_ids
    """

    def __init__(self, server_id: str | None = None):
        self._server_id = server_id or os.getenv("HOSTNAME", str(uuid.uuid4())[:8])
        self._settings = get_settings()

        self._connections: dict[str, Connection] = {}
        self._game_connections: dict[str, set[str]] = {}

        # Cleanup task
        self._cleanup_task: asyncio.Task | None = None

        logger.info("ConnectionManager initialized with server_id: %s", self._server_id)

    @property
    def server_id(self) -> str:
        return self._server_id

    async def connect(self, websocket: WebSocket, user_id: str, game_id: str) -> Connection:
        """Register an accepted WebSocket as a subscriber of game_id.

        Args:
            websocket: The accepted WebSocket instance.
            user_id: The authenticated user's ID.
            game_id: The game to watch.

        Returns:
            The created Connection object.
        """
        connection_id = str(uuid.uuid4())
        connection = Connection(
            connection_id=connection_id,
            websocket=websocket,
            user_id=user_id,
            game_id=game_id,
        )

        self._connections[connection_id] = connection
        self._game_connections.setdefault(game_id, set()).add(connection_id)

        logger.info(
            "Connection %s established for user %s on game %s (server %s)",
            connection_id,
            user_id,
            game_id,
            self._server_id,
        )

        await self.send_to_connection(
            connection_id,
            WSServerMessage(
                type=MessageType.CONNECTED,
                payload=ConnectedPayload(
                    connection_id=connection_id,
                    user_id=user_id,
                    server_id=self._server_id,
                    game_id=game_id,
                ).model_dump(),
            ),
        )
        return connection

    async def disconnect(self, connection_id: str) -> None:
        """Remove a WebSocket connection and its game subscription."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            logger.debug("Connection %s not found locally for disconnect", connection_id)
            return

        subscribers = self._game_connections.get(connection.game_id)
        if subscribers is not None:
            subscribers.discard(connection_id)
            if not subscribers:
                del self._game_connections[connection.game_id]

        logger.info("Connection %s disconnected for user %s", connection_id, connection.user_id)

    async def heartbeat(self, connection_id: str) -> None:
        connection = self._connections.get(connection_id)
        if connection:
            connection.last_heartbeat = datetime.now(timezone.utc)

    async def _close_and_drop(self, connection_ids: list[str], code: int) -> None:
        for conn_id in connection_ids:
            connection = self._connections.get(conn_id)
            if connection is not None:
                try:
                    await connection.websocket.close(code=code)
                except Exception as e:
                    logger.debug("Error closing websocket %s: %s", conn_id, e)
            await self.disconnect(conn_id)

    async def cleanup_stale_connections(self) -> int:
        """Drop subscribers that stopped sending pings.

        Returns:
            Number of connections removed.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(
            seconds=self._settings.WS_CONNECTION_TIMEOUT
        )
        stale = [
            conn_id
            for conn_id, connection in self._connections.items()
            if connection.last_heartbeat < cutoff
        ]
        await self._close_and_drop(stale, WSCloseCode.GOING_AWAY)
        if stale:
            logger.info("Removed %d stale live-feed connections", len(stale))
        return len(stale)

    async def _reap_forever(self) -> None:
        interval = self._settings.WS_HEARTBEAT_INTERVAL
        logger.info("Stale connection reaper running every %ds", interval)
        while True:
            await asyncio.sleep(interval)
            try:
                await self.cleanup_stale_connections()
            except Exception:
                logger.exception("Stale connection sweep failed")

    async def start_cleanup_task(self) -> None:
        """Start sweeping stale connections in the background."""
        if self._cleanup_task is not None:
            logger.warning("Cleanup task already running")
            return
        self._cleanup_task = asyncio.create_task(self._reap_forever())

    async def stop_cleanup_task(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Cleanup task stopped")

    async def close_all_connections(self) -> None:
        """Close every live-feed connection, e.g. on shutdown."""
        logger.info("Closing %d live-feed connections", len(self._connections))
        await self._close_and_drop(list(self._connections), WSCloseCode.GOING_AWAY)

    async def send_to_connection(self, connection_id: str, message: WSServerMessage) -> bool:
        """Send a message to a specific connection.

        Returns:
            True if sent successfully, False otherwise.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.debug("Connection %s not found for sending", connection_id)
            return False

        try:
            await connection.websocket.send_json(message.model_dump(mode="json", exclude_none=True))
            return True
        except Exception as e:
            logger.warning("Failed to send to connection %s: %s", connection_id, e)
            await self.disconnect(connection_id)
            return False

    async def send_to_game(self, game_id: str, message: WSServerMessage) -> int:
        """Send a message to every subscriber of a game on this server.

        Returns:
            Number of connections the message was sent to.
        """
        sent = 0
        for conn_id in list(self._game_connections.get(game_id, set())):
            if await self.send_to_connection(conn_id, message):
                sent += 1
        return sent

    async def publish_game_update(
        self, game_id: str, game: Game, events: list[AnyGameEvent]
    ) -> None:
        """Push a committed transition to the game's subscribers."""
        if events:
            await self.send_to_game(
                game_id,
                WSServerMessage(
                    type=MessageType.GAME_EVENTS,
                    payload=GameEventsPayload(
                        game_id=game_id,
                        events=[event.model_dump(mode="json") for event in events],
                    ).model_dump(),
                ),
            )
        sent = await self.send_to_game(game_id, game_state_message(game_id, game))
        logger.debug("Published update for game %s to %d connections", game_id, sent)

    def get_connection(self, connection_id: str) -> Connection | None:
        """Get a connection by ID (local only)."""
        return self._connections.get(connection_id)

    def get_game_connection_count(self, game_id: str) -> int:
        return len(self._game_connections.get(game_id, set()))

    def get_total_connection_count(self) -> int:
        return len(self._connections)


# Global manager instance (initialized in lifespan)
_connection_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Get the global ConnectionManager instance."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager


def set_connection_manager(manager: ConnectionManager | None) -> None:
    """Set the global ConnectionManager instance."""
    global _connection_manager
    _connection_manager = manager
