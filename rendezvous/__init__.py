# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rendezvous.logging import logger
from rendezvous.middlewares.correlation_id import CorrelationIDMiddleware
from rendezvous.routing import collect_subrouters
from rendezvous.settings import app_settings

__version__ = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup and shutdown.

    Rooms and identities live in memory only, so shutdown has nothing to
    flush; it logs what is about to be discarded.
    """
    logger.info(
        f"Signaling relay {__version__} starting "
        f"(python {sys.version_info.major}.{sys.version_info.minor}, "
        f"websocket path {app_settings.WS_PATH})"
    )

    yield

    from rendezvous.managers.signaling_relay import signaling_relay

    logger.info(
        f"Application shutdown with {len(signaling_relay.connections)} "
        f"open connections in {signaling_relay.rooms.room_count} rooms"
    )


def application() -> FastAPI:
    """
    Initializes and configures the FastAPI application.

    Includes every router found by `collect_subrouters()` (HTTP health and
    metrics, the signaling websocket) and adds the following middleware:
    - `CORSMiddleware`: lets the browser client's origin call the HTTP API.
    - `CorrelationIDMiddleware`: request correlation IDs for HTTP logs.
    """
    app = FastAPI(
        title="Rendezvous signaling relay",
        description="Room-based WebRTC signaling over WebSocket",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(collect_subrouters())

    # Middlewares (execute in REVERSE order of registration)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ALLOWED_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIDMiddleware)

    return app


app = application()  # Need for fastapi cli
