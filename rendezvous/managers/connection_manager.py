import asyncio
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from rendezvous.logging import logger
from rendezvous.schemas.events import EventModel
from rendezvous.schemas.generic_typing import ConnectionId
from rendezvous.utils.metrics import (
    signaling_messages_dropped_total,
    signaling_messages_routed_total,
)


class ConnectionManager:
    """
    Manager for open signaling WebSocket connections.

    Maps relay-assigned connection ids to their WebSocket for O(1) lookups.
    Sends are best effort: a send to an unknown id or over a dead socket is
    reported as ``False`` and never raises to the caller.
    """

    def __init__(self) -> None:
        """
        Initializes a new instance of the `ConnectionManager` class.

        The `connections` attribute is a dict mapping connection ids to
        WebSocket connections.
        """
        self.connections: dict[ConnectionId, WebSocket] = {}

    def connect(self, connection_id: ConnectionId, websocket: WebSocket) -> None:
        """
        Adds a new WebSocket connection under its connection id.

        Args:
            connection_id: Relay-assigned id for this connection.
            websocket: The accepted WebSocket connection.
        """
        self.connections[connection_id] = websocket
        logger.debug(
            f"websocket object ({id(websocket)}) added to active connections "
            f"with id {connection_id}"
        )

    def disconnect(self, connection_id: ConnectionId) -> None:
        """
        Removes a WebSocket connection by connection id.

        Args:
            connection_id: The id of the connection to remove.
        """
        if connection_id not in self.connections:
            return

        websocket = self.connections.pop(connection_id)
        logger.debug(
            f"websocket object ({id(websocket)}) removed from active connections "
            f"for id {connection_id}"
        )

    def is_open(self, connection_id: Any) -> bool:
        return connection_id in self.connections

    def __len__(self) -> int:
        return len(self.connections)

    async def send(self, connection_id: ConnectionId, message: EventModel) -> bool:
        """
        Sends one event to one connection.

        A failed send means the transport is gone, so the socket is evicted
        right away and is no longer reachable for routing. The endpoint's
        own disconnect handling reclaims the rest of its state.

        Args:
            connection_id: Addressee.
            message: Outbound event.

        Returns:
            True if the event was handed to the transport, False otherwise.
        """
        connection = self.connections.get(connection_id)
        if connection is None:
            logger.debug(
                f"Dropping {message.kind} for unknown connection {connection_id}"
            )
            signaling_messages_dropped_total.labels(
                reason="unknown_addressee"
            ).inc()
            return False

        try:
            await connection.send_json(message.dump())
        except (WebSocketDisconnect, ConnectionError, RuntimeError) as e:
            # WebSocketDisconnect: Client disconnected
            # ConnectionError: Network errors
            # RuntimeError: WebSocket in invalid state
            logger.warning(
                f"Failed to send {message.kind} to connection {connection_id}: {e}"
            )
            signaling_messages_dropped_total.labels(reason="send_failed").inc()
            self.disconnect(connection_id)
            return False

        signaling_messages_routed_total.labels(kind=message.kind).inc()
        return True

    async def send_many(
        self, connection_ids: list[ConnectionId], message: EventModel
    ) -> int:
        """
        Sends one event to several connections concurrently.

        Uses asyncio.gather so one slow socket does not serialize the rest.

        Returns:
            Number of connections the event was delivered to.
        """
        if not connection_ids:
            return 0

        results = await asyncio.gather(
            *[self.send(connection_id, message) for connection_id in connection_ids],
            return_exceptions=True,
        )
        return sum(1 for result in results if result is True)


connection_manager = ConnectionManager()
