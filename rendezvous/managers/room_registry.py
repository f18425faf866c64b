from collections import defaultdict

from rendezvous.logging import logger
from rendezvous.managers.connection_manager import (
    ConnectionManager,
    connection_manager,
)
from rendezvous.schemas.events import EventModel
from rendezvous.schemas.generic_typing import ConnectionId, RoomId
from rendezvous.utils.metrics import signaling_rooms_active


class RoomRegistry:
    """
    Tracks which connections belong to which room.

    Rooms are created on first join and pruned as soon as their last member
    leaves. A reverse index from connection to rooms keeps disconnect cleanup
    proportional to the rooms the connection actually joined.
    """

    def __init__(self, connections: ConnectionManager) -> None:
        """
        Args:
            connections: Manager used to deliver room broadcasts.
        """
        self.connections = connections
        self.rooms: dict[RoomId, set[ConnectionId]] = {}
        self._memberships: defaultdict[ConnectionId, set[RoomId]] = defaultdict(
            set
        )

    def join(self, room_id: RoomId, connection_id: ConnectionId) -> bool:
        """
        Add ``connection_id`` to ``room_id``, creating the room if needed.

        Rejoining a room the connection is already in changes nothing.

        Returns:
            True if the membership is new.
        """
        members = self.rooms.setdefault(room_id, set())
        if connection_id in members:
            logger.debug(f"Connection {connection_id} already in room {room_id}")
            return False

        members.add(connection_id)
        self._memberships[connection_id].add(room_id)
        signaling_rooms_active.set(len(self.rooms))
        logger.debug(
            f"Connection {connection_id} joined room {room_id} "
            f"({len(members)} members)"
        )
        return True

    def leave(self, room_id: RoomId, connection_id: ConnectionId) -> bool:
        """
        Remove ``connection_id`` from ``room_id``, pruning the room if empty.

        Returns:
            True if the connection was a member.
        """
        members = self.rooms.get(room_id)
        if not members or connection_id not in members:
            return False

        members.discard(connection_id)
        rooms = self._memberships.get(connection_id)
        if rooms is not None:
            rooms.discard(room_id)
            if not rooms:
                del self._memberships[connection_id]

        if not members:
            del self.rooms[room_id]
            logger.debug(f"Room {room_id} is empty, pruned")

        signaling_rooms_active.set(len(self.rooms))
        return True

    def leave_all(self, connection_id: ConnectionId) -> list[RoomId]:
        """
        Remove ``connection_id`` from every room it joined.

        Returns:
            The rooms it was removed from.
        """
        rooms = list(self._memberships.get(connection_id, ()))
        for room_id in rooms:
            self.leave(room_id, connection_id)
        return rooms

    def members(self, room_id: RoomId) -> set[ConnectionId]:
        return set(self.rooms.get(room_id, ()))

    def rooms_of(self, connection_id: ConnectionId) -> set[RoomId]:
        return set(self._memberships.get(connection_id, ()))

    @property
    def room_count(self) -> int:
        return len(self.rooms)

    async def broadcast(
        self,
        room_id: RoomId,
        message: EventModel,
        exclude: ConnectionId | None = None,
    ) -> int:
        """
        Deliver ``message`` to every current member of ``room_id``.

        Works on a snapshot of the membership, so joins and leaves that
        happen while sends are in flight do not affect this fan-out.

        Args:
            room_id: Target room.
            message: Event to deliver.
            exclude: Optional member to skip (usually the originator).

        Returns:
            Number of members the event was delivered to.
        """
        targets = [
            member for member in self.members(room_id) if member != exclude
        ]
        delivered = await self.connections.send_many(targets, message)
        logger.debug(
            f"Broadcast {message.kind} to room {room_id}: "
            f"{delivered}/{len(targets)} delivered"
        )
        return delivered


room_registry = RoomRegistry(connection_manager)
