from collections.abc import Awaitable
from typing import Any, Callable, Union

from rendezvous.schemas.request import SignalRequest

# Relay-assigned handle for one live websocket (a UUID4 string)
ConnectionId = str
# Application-supplied participant label, e.g. an email address
Identity = str
RoomId = str

# Type definitions
JsonSchemaType = dict[str, Union[str, int, float, bool, list[Any], "JsonSchemaType"]]
ValidatorType = Callable[[SignalRequest, JsonSchemaType], None]
HandlerCallableType = Callable[[SignalRequest], Awaitable[None]]
