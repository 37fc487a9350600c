"""Registry of live-feed message handlers.

Each handler answers one client message type for the connection that sent
it. Game updates for every subscriber go out through the connection manager
once a transition commits, not through handler results.
"""

import logging
from collections.abc import Awaitable, Callable

from app.schemas.ws import MessageType

from .base import HandlerContext, HandlerResult

logger = logging.getLogger(__name__)

HandlerFunc = Callable[[HandlerContext], Awaitable[HandlerResult]]

_handlers: dict[MessageType, HandlerFunc] = {}


def handler(message_type: MessageType) -> Callable[[HandlerFunc], HandlerFunc]:
    """Register the decorated coroutine as the handler for message_type.

    Usage:
        @handler(MessageType.GAME_ACTION)
        async def handle_game_action(ctx: HandlerContext) -> HandlerResult:
            ...
    """

    def register(func: HandlerFunc) -> HandlerFunc:
        previous = _handlers.get(message_type)
        if previous is not None and previous is not func:
            logger.warning("Replacing handler %s for %s", previous.__name__, message_type)
        _handlers[message_type] = func
        return func

    return register


async def dispatch(ctx: HandlerContext) -> HandlerResult | None:
    """Run the handler registered for the message's type.

    Returns:
        The handler's result, or None when nothing handles this type.
    """
    handler_func = _handlers.get(ctx.message.type)
    if handler_func is None:
        logger.debug(
            "No handler for %s (connection %s, game %s)",
            ctx.message.type,
            ctx.connection_id,
            ctx.game_id,
        )
        return None
    return await handler_func(ctx)


# Handler modules register themselves on import.
from . import game  # noqa: E402, F401
from . import ping  # noqa: E402, F401

__all__ = [
    "HandlerContext",
    "HandlerResult",
    "dispatch",
    "handler",
]
