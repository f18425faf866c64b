import json
import uuid
from typing import Any

from starlette import status
from starlette.endpoints import WebSocketEndpoint
from starlette.websockets import WebSocket

from rendezvous.exceptions import MalformedMessageError
from rendezvous.logging import clear_log_context, logger, set_log_context
from rendezvous.managers.signaling_relay import signaling_relay
from rendezvous.settings import app_settings
from rendezvous.utils.metrics import (
    signaling_messages_dropped_total,
    ws_connections_active,
    ws_connections_total,
)


def _reject_constant(name: str) -> Any:
    # NaN, Infinity and -Infinity
    raise MalformedMessageError(f"Non-standard JSON constant {name}")


class SignalingWebSocketEndpoint(WebSocketEndpoint):  # type: ignore[misc]
    """
    WebSocket endpoint for one signaling participant.

    Owns the connection lifecycle: allocates the connection id on accept,
    decodes JSON envelopes, and hands the connection back to the relay for
    cleanup when the transport closes. A bad frame only costs that frame;
    the connection stays open.
    """

    encoding = None  # Text and binary frames are both decoded as JSON

    async def dispatch(self) -> None:
        """
        Runs the receive loop for one connection.

        Frames are processed strictly in arrival order. Frames that cannot be
        decoded are logged and skipped. Any other exception closes the loop
        with WS_1011_INTERNAL_ERROR, and `on_disconnect` always runs.
        """
        websocket = WebSocket(self.scope, receive=self.receive, send=self.send)
        await self.on_connect(websocket)

        close_code = status.WS_1000_NORMAL_CLOSURE

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.receive":
                    try:
                        data = await self.decode(websocket, message)
                    except MalformedMessageError as ex:
                        logger.debug(f"Discarding frame: {ex}")
                        signaling_messages_dropped_total.labels(
                            reason="malformed"
                        ).inc()
                        continue
                    await self.on_receive(websocket, data)
                elif message["type"] == "websocket.disconnect":
                    close_code = int(
                        message.get("code") or status.WS_1000_NORMAL_CLOSURE
                    )
                    break
        except Exception as exc:
            close_code = status.WS_1011_INTERNAL_ERROR
            raise exc
        finally:
            await self.on_disconnect(websocket, close_code)

    async def decode(
        self, websocket: WebSocket, message: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Decode one frame into a JSON object.

        Args:
            websocket: WebSocket connection instance
            message: Raw ASGI receive message

        Returns:
            The decoded envelope.

        Raises:
            MalformedMessageError: Oversize frame, invalid JSON or a JSON
                value that is not an object.
        """
        raw = message.get("text")
        if raw is None:
            raw = message.get("bytes") or b""

        size = len(raw.encode() if isinstance(raw, str) else raw)
        if size > app_settings.WS_MAX_MESSAGE_BYTES:
            raise MalformedMessageError(
                f"Frame of {size} bytes exceeds {app_settings.WS_MAX_MESSAGE_BYTES}"
            )

        try:
            data = json.loads(raw, parse_constant=_reject_constant)
        except ValueError as ex:
            raise MalformedMessageError(f"Invalid JSON: {ex}") from ex

        if not isinstance(data, dict):
            raise MalformedMessageError(
                f"Expected a JSON object, got {type(data).__name__}"
            )
        return data

    async def on_connect(self, websocket: WebSocket) -> None:
        """
        Accepts the connection and makes it addressable.

        The connection id is bound into the log context, so every log line
        for this connection carries it.
        """
        await websocket.accept()

        self.connection_id = str(uuid.uuid4())
        set_log_context(connection_id=self.connection_id)

        await signaling_relay.open_connection(self.connection_id, websocket)

        ws_connections_total.labels(status="accepted").inc()
        ws_connections_active.inc()
        logger.debug(
            f"Client connected to websocket (connection_id: {self.connection_id})"
        )

    async def on_disconnect(self, websocket: WebSocket, close_code: int) -> None:
        """
        Reclaims the connection id, its room memberships and identity.
        """
        if hasattr(self, "connection_id"):
            await signaling_relay.close_connection(self.connection_id)
            ws_connections_total.labels(status="closed").inc()
            ws_connections_active.dec()

        logger.debug(f"Client disconnected with code {close_code}")
        clear_log_context()
