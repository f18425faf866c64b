"""
Room membership handlers.

Joining records the participant identity and announces the newcomer to the
room; leaving announces the departure to whoever is left.
"""

from rendezvous.api.ws.constants import Event
from rendezvous.api.ws.validation import validator
from rendezvous.managers.signaling_relay import signaling_relay
from rendezvous.routing import event_router
from rendezvous.schemas.generic_typing import JsonSchemaType
from rendezvous.schemas.request import SignalRequest

room_join_schema: JsonSchemaType = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "email": {"type": "string", "minLength": 1},
        "room": {"type": "string", "minLength": 1},
    },
    "required": ["email", "room"],
}

room_leave_schema: JsonSchemaType = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "room": {"type": "string", "minLength": 1},
    },
    "required": ["room"],
}


@event_router.register(
    Event.ROOM_JOIN,
    json_schema=room_join_schema,
    validator_callback=validator,
)
async def room_join_handler(request: SignalRequest) -> None:
    """
    Join a room.

    Request Data:
        {"email": str, "room": str, ...any extra fields}

    Emits `user:joined {email, id}` to the other members and echoes the
    request fields back to the joiner as `room:join`.
    """
    await signaling_relay.join_room(
        request.sender,
        request.data["email"],
        request.data["room"],
        request.data,
    )


@event_router.register(
    Event.ROOM_LEAVE,
    json_schema=room_leave_schema,
    validator_callback=validator,
)
async def room_leave_handler(request: SignalRequest) -> None:
    await signaling_relay.leave_room(request.sender, request.data["room"])
