import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.dependencies.store import close_game_store, get_game_store
from app.routers import games, ws
from app.services.identity import close_token_verifier
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting SK8 API")
    logger.debug("Debug mode: %s", settings.DEBUG)

    get_game_store()
    logger.info("Game store ready (%s)", settings.GAME_STORE_BACKEND)

    connection_manager = get_connection_manager()
    await connection_manager.start_cleanup_task()
    logger.info("WebSocket connection manager initialized")

    yield

    logger.info("Shutting down SK8 API")
    await connection_manager.stop_cleanup_task()
    await connection_manager.close_all_connections()
    await close_token_verifier()
    await close_game_store()
    logger.info("WebSocket, identity and store cleanup complete")


app = FastAPI(
    title="SK8 API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.debug("CORS configured with origins: %s", settings.CORS_ORIGINS)

app.include_router(games.router, prefix="/api/v1")
app.include_router(ws.router, prefix="/api/v1")
logger.debug("Routers registered: /api/v1/games, /api/v1/ws")


@app.get("/")
def root():
    return {"message": "SK8 API"}


@app.get("/health")
def health():
    return {"status": "healthy"}
