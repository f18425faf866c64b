import time
from typing import Any

from fastapi import APIRouter
from pydantic import ValidationError

from rendezvous.api.ws.handlers import load_handlers
from rendezvous.api.ws.websocket import SignalingWebSocketEndpoint
from rendezvous.exceptions import MalformedMessageError, UnknownEventError
from rendezvous.logging import logger
from rendezvous.routing import event_router
from rendezvous.schemas.request import SignalRequest
from rendezvous.settings import app_settings
from rendezvous.utils.metrics import (
    signaling_messages_dropped_total,
    ws_message_processing_duration_seconds,
    ws_messages_received_total,
)

load_handlers()

router = APIRouter()


class Signaling(SignalingWebSocketEndpoint):
    """
    WebSocket endpoint speaking the signaling protocol.

    Every decoded envelope becomes a `SignalRequest` tagged with this
    connection's id and is dispatched through `event_router`. Nothing is
    ever sent back for a rejected message.
    """

    async def on_receive(self, websocket, data: dict[str, Any]):
        """
        Dispatches one decoded envelope.

        Rejections (missing or unknown kind, fields failing the kind's schema,
        handler errors) are logged and counted, then the message is dropped.
        The connection stays open and other connections are unaffected.

        Args:
            websocket: The WebSocket connection instance
            data (dict[str, Any]): The decoded envelope
        """
        try:
            request = SignalRequest.from_envelope(self.connection_id, data)
        except ValidationError:
            logger.debug(f"Received envelope without a valid kind: {data}")
            signaling_messages_dropped_total.labels(reason="malformed").inc()
            return

        kind_label = (
            request.kind if event_router.has_handler(request.kind) else "unknown"
        )
        ws_messages_received_total.labels(kind=kind_label).inc()

        start_time = time.time()
        try:
            await event_router.handle_request(request)
            logger.debug(f"Handled {request.kind}")
        except UnknownEventError as ex:
            logger.debug(str(ex))
            signaling_messages_dropped_total.labels(reason="unknown_kind").inc()
        except MalformedMessageError as ex:
            logger.debug(f"Discarding message: {ex}")
            signaling_messages_dropped_total.labels(reason="malformed").inc()
        except Exception:
            # A failing handler must never take the connection down
            logger.exception(f"Error while handling {request.kind}")
            signaling_messages_dropped_total.labels(reason="error").inc()
        finally:
            ws_message_processing_duration_seconds.labels(
                kind=kind_label
            ).observe(time.time() - start_time)


router.add_websocket_route(app_settings.WS_PATH, Signaling)
