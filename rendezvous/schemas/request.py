from typing import Any

from pydantic import BaseModel, Field

from rendezvous.constants import ENVELOPE_KIND_KEY


class SignalRequest(BaseModel):
    """
    One inbound signaling message, as seen by handlers.

    Attributes:
        kind: Message kind, routes the request to its handler.
        sender: Connection id of the socket the message arrived on. Always
            set by the relay, never read from the client.
        data: Every other envelope field, untouched.
    """

    kind: str = Field(frozen=True, min_length=1)
    sender: str = Field(frozen=True)
    data: dict[str, Any] = {}

    @classmethod
    def from_envelope(
        cls, sender: str, envelope: dict[str, Any]
    ) -> "SignalRequest":
        """
        Split a decoded ``{"kind": ..., ...fields}`` envelope.

        Raises:
            pydantic.ValidationError: If ``kind`` is missing or not a string.
        """
        data = {k: v for k, v in envelope.items() if k != ENVELOPE_KIND_KEY}
        return cls(kind=envelope.get(ENVELOPE_KIND_KEY), sender=sender, data=data)
