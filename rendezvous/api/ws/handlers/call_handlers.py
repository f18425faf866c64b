"""
Peer-to-peer negotiation handlers.

Each inbound kind maps to exactly one outbound kind delivered to the
connection named in `to`, tagged with the sender as `from`:

    user:call         {to, offer}      -> incoming:call     {from, offer}
    call:accepted     {to, ans}        -> call:accepted     {from, ans}
    peer:nego:needed  {to, offer}      -> peer:nego:needed  {from, offer}
    peer:nego:done    {to, ans}        -> peer:nego:final   {from, ans}
    ice-candidate     {to, candidate}  -> ice-candidate     {from, candidate}
"""

from rendezvous.api.ws.constants import Event, OutboundEvent
from rendezvous.api.ws.validation import addressed_schema, validator
from rendezvous.managers.signaling_relay import signaling_relay
from rendezvous.routing import event_router
from rendezvous.schemas.request import SignalRequest


@event_router.register(
    Event.USER_CALL,
    json_schema=addressed_schema("offer"),
    validator_callback=validator,
)
async def user_call_handler(request: SignalRequest) -> None:
    await signaling_relay.forward(
        request.sender,
        request.data["to"],
        OutboundEvent.INCOMING_CALL,
        offer=request.data["offer"],
    )


@event_router.register(
    Event.CALL_ACCEPTED,
    json_schema=addressed_schema("ans"),
    validator_callback=validator,
)
async def call_accepted_handler(request: SignalRequest) -> None:
    await signaling_relay.forward(
        request.sender,
        request.data["to"],
        OutboundEvent.CALL_ACCEPTED,
        ans=request.data["ans"],
    )


@event_router.register(
    Event.PEER_NEGO_NEEDED,
    json_schema=addressed_schema("offer"),
    validator_callback=validator,
)
async def peer_nego_needed_handler(request: SignalRequest) -> None:
    """Renegotiation offer, sent when a peer's tracks change mid-session."""
    await signaling_relay.forward(
        request.sender,
        request.data["to"],
        OutboundEvent.PEER_NEGO_NEEDED,
        offer=request.data["offer"],
    )


@event_router.register(
    Event.PEER_NEGO_DONE,
    json_schema=addressed_schema("ans"),
    validator_callback=validator,
)
async def peer_nego_done_handler(request: SignalRequest) -> None:
    await signaling_relay.forward(
        request.sender,
        request.data["to"],
        OutboundEvent.PEER_NEGO_FINAL,
        ans=request.data["ans"],
    )


@event_router.register(
    Event.ICE_CANDIDATE,
    json_schema=addressed_schema("candidate"),
    validator_callback=validator,
)
async def ice_candidate_handler(request: SignalRequest) -> None:
    await signaling_relay.forward(
        request.sender,
        request.data["to"],
        OutboundEvent.ICE_CANDIDATE,
        candidate=request.data["candidate"],
    )
