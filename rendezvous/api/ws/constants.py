from enum import StrEnum


class Event(StrEnum):
    """
    Inbound message kinds understood by the relay.

    Attributes:
        ROOM_JOIN: Join a room under a participant identity.
        ROOM_LEAVE: Leave a room without closing the connection.
        USER_CALL: Send a session offer to another connection.
        CALL_ACCEPTED: Answer an incoming call.
        PEER_NEGO_NEEDED: Send a renegotiation offer.
        PEER_NEGO_DONE: Answer a renegotiation offer.
        ICE_CANDIDATE: Forward a network reachability candidate.
    """

    ROOM_JOIN = "room:join"
    ROOM_LEAVE = "room:leave"
    USER_CALL = "user:call"
    CALL_ACCEPTED = "call:accepted"
    PEER_NEGO_NEEDED = "peer:nego:needed"
    PEER_NEGO_DONE = "peer:nego:done"
    ICE_CANDIDATE = "ice-candidate"


class OutboundEvent(StrEnum):
    """
    Message kinds emitted by the relay.

    Example:
        >>> OutboundEvent.INCOMING_CALL
        <OutboundEvent.INCOMING_CALL: 'incoming:call'>
    """

    CONNECTION_OPEN = "connection:open"
    ROOM_JOIN = "room:join"
    USER_JOINED = "user:joined"
    USER_LEFT = "user:left"
    INCOMING_CALL = "incoming:call"
    CALL_ACCEPTED = "call:accepted"
    PEER_NEGO_NEEDED = "peer:nego:needed"
    PEER_NEGO_FINAL = "peer:nego:final"
    ICE_CANDIDATE = "ice-candidate"
