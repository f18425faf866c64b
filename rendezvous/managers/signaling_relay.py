"""
Signaling relay: room membership plus addressee-exact message routing.

The relay never looks inside offers, answers or candidates. It tags each
forwarded message with the sender's connection id and hands it to exactly one
open connection, or drops it.
"""

import asyncio
from typing import Any

from fastapi import WebSocket

from rendezvous.api.ws.constants import OutboundEvent
from rendezvous.constants import ENVELOPE_SENDER_KEY
from rendezvous.logging import logger
from rendezvous.managers.connection_manager import (
    ConnectionManager,
    connection_manager,
)
from rendezvous.managers.identity_index import IdentityIndex, identity_index
from rendezvous.managers.room_registry import RoomRegistry, room_registry
from rendezvous.schemas.events import EventModel
from rendezvous.schemas.generic_typing import ConnectionId, Identity, RoomId
from rendezvous.utils.metrics import signaling_messages_dropped_total


class SignalingRelay:
    """
    Coordinates connections, rooms and identities for the signaling protocol.

    Every mutation of the identity index and the room registry happens under
    one asyncio lock, so concurrent joins, leaves and disconnects from
    different connections cannot interleave half-way. Sends always happen
    after the lock is released.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        rooms: RoomRegistry,
        identities: IdentityIndex,
    ) -> None:
        self.connections = connections
        self.rooms = rooms
        self.identities = identities
        self._lock = asyncio.Lock()

    async def open_connection(
        self, connection_id: ConnectionId, websocket: WebSocket
    ) -> None:
        """
        Make a freshly accepted websocket addressable and tell it its id.
        """
        self.connections.connect(connection_id, websocket)
        await self.connections.send(
            connection_id,
            EventModel.build(OutboundEvent.CONNECTION_OPEN, id=connection_id),
        )

    async def close_connection(self, connection_id: ConnectionId) -> None:
        """
        Reclaim everything that references a closed connection.

        Removes it from every room, drops both identity entries and the
        socket, then tells the remaining members of each room.
        """
        async with self._lock:
            rooms_left = self.rooms.leave_all(connection_id)
            identity = self.identities.remove_by_connection(connection_id)
            self.connections.disconnect(connection_id)

        logger.debug(
            f"Reclaimed connection {connection_id} "
            f"(identity: {identity}, rooms: {rooms_left})"
        )

        for room_id in rooms_left:
            await self.rooms.broadcast(
                room_id,
                EventModel.build(
                    OutboundEvent.USER_LEFT, email=identity, id=connection_id
                ),
            )

    async def join_room(
        self,
        sender: ConnectionId,
        identity: Identity,
        room_id: RoomId,
        payload: dict[str, Any],
    ) -> None:
        """
        Put ``sender`` in ``room_id`` under ``identity``.

        Existing members are told about the newcomer (the newcomer itself is
        not), then the joiner gets its own payload back as confirmation.
        Rejoining a room re-sends the confirmation but not the announcement.

        Args:
            sender: Joining connection.
            identity: Participant label, overwrites any earlier mapping.
            room_id: Room to join, created if absent.
            payload: The join message fields as received.
        """
        async with self._lock:
            self.identities.set_mapping(identity, sender)
            is_new_member = self.rooms.join(room_id, sender)

        if is_new_member:
            logger.info(f"{identity} joined room {room_id}")
            await self.rooms.broadcast(
                room_id,
                EventModel.build(OutboundEvent.USER_JOINED, email=identity, id=sender),
                exclude=sender,
            )

        await self.connections.send(
            sender, EventModel.build(OutboundEvent.ROOM_JOIN, **payload)
        )

    async def leave_room(self, sender: ConnectionId, room_id: RoomId) -> None:
        """
        Take ``sender`` out of ``room_id`` and tell the remaining members.

        Leaving a room the connection is not in does nothing.
        """
        async with self._lock:
            was_member = self.rooms.leave(room_id, sender)
            identity = self.identities.lookup_by_connection(sender)

        if not was_member:
            logger.debug(f"Connection {sender} is not in room {room_id}")
            return

        logger.info(f"{identity} left room {room_id}")
        await self.rooms.broadcast(
            room_id,
            EventModel.build(OutboundEvent.USER_LEFT, email=identity, id=sender),
        )

    def resolve_addressee(self, to: Any) -> ConnectionId | None:
        """
        Turn a ``to`` field into an open connection id.

        ``to`` is tried as a connection id first, then as a participant
        identity. Anything that does not lead to an open connection resolves
        to None.
        """
        if not isinstance(to, str):
            return None
        if self.connections.is_open(to):
            return to

        connection_id = self.identities.lookup_by_identity(to)
        if connection_id is not None and self.connections.is_open(connection_id):
            return connection_id
        return None

    async def forward(
        self,
        sender: ConnectionId,
        to: Any,
        kind: OutboundEvent,
        **payload: Any,
    ) -> bool:
        """
        Deliver ``payload`` to the single connection ``to`` resolves to.

        The message is tagged with ``from`` set to ``sender``. Unknown or
        closed addressees are dropped without telling the sender.

        Returns:
            True if the message was handed to the addressee's transport.
        """
        addressee = self.resolve_addressee(to)
        if addressee is None:
            logger.debug(f"Dropping {kind} from {sender}: no open connection for {to}")
            signaling_messages_dropped_total.labels(reason="unknown_addressee").inc()
            return False

        message = EventModel.build(kind, **{ENVELOPE_SENDER_KEY: sender, **payload})
        return await self.connections.send(addressee, message)


signaling_relay = SignalingRelay(connection_manager, room_registry, identity_index)
