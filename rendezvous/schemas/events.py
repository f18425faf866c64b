from typing import Any

from pydantic import BaseModel, ConfigDict

from rendezvous.api.ws.constants import OutboundEvent


class EventModel(BaseModel):
    """
    Outbound event envelope: ``{"kind": ..., ...fields}``.

    Fields besides ``kind`` are free-form so offers, answers and candidates
    pass through exactly as the peer sent them.
    """

    model_config = ConfigDict(extra="allow")

    kind: OutboundEvent

    @classmethod
    def build(cls, kind: OutboundEvent, **fields: Any) -> "EventModel":
        return cls(kind=kind, **fields)

    def dump(self) -> dict[str, Any]:
        """
        Plain dict for ``WebSocket.send_json``.

        Python mode, so payload values come out exactly as they went in.
        """
        return self.model_dump()
