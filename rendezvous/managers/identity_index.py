from rendezvous.logging import logger
from rendezvous.schemas.generic_typing import ConnectionId, Identity


class IdentityIndex:
    """
    Bidirectional index between participant identities and connection ids.

    Both directions are always updated together, so for every pair
    ``lookup_by_identity(i) == c`` holds exactly when
    ``lookup_by_connection(c) == i``. Methods never await, which makes each
    call atomic on the event loop.
    """

    def __init__(self) -> None:
        self._by_identity: dict[Identity, ConnectionId] = {}
        self._by_connection: dict[ConnectionId, Identity] = {}

    def set_mapping(self, identity: Identity, connection_id: ConnectionId) -> None:
        """
        Map ``identity`` to ``connection_id``, last write wins.

        A stale connection previously holding the identity loses its reverse
        entry, and an identity previously held by the connection loses its
        forward entry.
        """
        previous_connection = self._by_identity.get(identity)
        if previous_connection is not None and previous_connection != connection_id:
            self._by_connection.pop(previous_connection, None)
            logger.debug(
                f"Identity {identity} moved from connection "
                f"{previous_connection} to {connection_id}"
            )

        previous_identity = self._by_connection.get(connection_id)
        if previous_identity is not None and previous_identity != identity:
            self._by_identity.pop(previous_identity, None)

        self._by_identity[identity] = connection_id
        self._by_connection[connection_id] = identity

    def remove_by_connection(self, connection_id: ConnectionId) -> Identity | None:
        """
        Remove both entries for ``connection_id``.

        Returns:
            The identity that was mapped to the connection, if any.
        """
        identity = self._by_connection.pop(connection_id, None)
        if identity is not None and self._by_identity.get(identity) == connection_id:
            del self._by_identity[identity]
        return identity

    def lookup_by_identity(self, identity: Identity) -> ConnectionId | None:
        return self._by_identity.get(identity)

    def lookup_by_connection(self, connection_id: ConnectionId) -> Identity | None:
        return self._by_connection.get(connection_id)

    def __len__(self) -> int:
        return len(self._by_identity)


identity_index = IdentityIndex()
