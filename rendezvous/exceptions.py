"""
Custom exception classes for the relay.

None of these ever cross the websocket boundary: the endpoint catches them,
logs them and drops the offending message.
"""


class MalformedMessageError(Exception):
    """
    Inbound frame could not be turned into a signaling message.

    Raised for undecodable JSON, non-object payloads, oversize frames and
    payloads failing their kind's JSON schema.
    """

    pass


class UnknownEventError(Exception):
    """
    Inbound message carries a kind that has no registered handler.
    """

    def __init__(self, kind: str):
        super().__init__(f"No handler registered for kind {kind!r}")
        self.kind = kind
