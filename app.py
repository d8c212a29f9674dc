from contextlib import asynccontextmanager
from typing import Optional
import json

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from backend import ChatStore, RedisBackend
from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL, REQUIRE_ADMIN_TOKEN
from logging_config import get_logger, setup_logging
from mailer import EmailJSMailer
from realtime.connection import WebSocketConnection
from realtime.relay import EventRelay
from routers.admin import admin_router
from routers.auth import auth_router
from routers.rooms import rooms_router

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.backend.ping()
    yield
    logger.info(f"Shutting down with {len(app.state.relay.registry)} open realtime connections")


async def root():
    return "Backend server running!"


async def websocket_endpoint(websocket: WebSocket):
    """Realtime channel.

    Inbound frames are JSON {"event": <name>, "data": {...}}; anything else is
    logged and skipped. The connection stays registered until the socket closes.
    """
    relay: EventRelay = websocket.app.state.relay
    await websocket.accept()

    connection = WebSocketConnection(websocket)
    relay.connect(connection)

    message_count = 0
    try:
        while True:
            data = await websocket.receive_text()
            message_count += 1

            try:
                frame = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Dropping non-JSON frame #{message_count} from connection {connection.id}")
                continue

            if not isinstance(frame, dict) or not frame.get("event"):
                logger.warning(f"Dropping frame #{message_count} without an event from connection {connection.id}")
                continue

            logger.debug(f"Received {frame['event']} (#{message_count}) from connection {connection.id}")
            await relay.dispatch(connection.id, frame["event"], frame.get("data") or {})

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected normally for connection {connection.id}")
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection.id}: {e}", exc_info=True)
    finally:
        await relay.disconnect(connection.id)


def create_app(
    backend: Optional[RedisBackend] = None,
    mailer: Optional[EmailJSMailer] = None,
    relay: Optional[EventRelay] = None,
    require_admin_token: bool = REQUIRE_ADMIN_TOKEN,
) -> FastAPI:
    app = FastAPI(lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.backend = backend or RedisBackend()
    app.state.mailer = mailer or EmailJSMailer()
    app.state.relay = relay or EventRelay(store=ChatStore(app.state.backend))
    app.state.require_admin_token = require_admin_token

    app.add_api_route("/", root, methods=["GET"], response_class=PlainTextResponse)
    app.add_api_websocket_route("/ws", websocket_endpoint)
    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(rooms_router)

    logger.info("FastAPI application initialized")
    return app


app = create_app()
