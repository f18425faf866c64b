"""
Tests for the signaling relay.

Covers room join/leave announcements, addressee-exact forwarding and
disconnect cleanup, using mocked websockets on an isolated relay.
"""

import asyncio
import math
from unittest.mock import patch

import pytest

from rendezvous.api.ws.constants import OutboundEvent
from tests.mocks.websocket_mocks import (
    create_failing_websocket,
    create_mock_websocket,
    sent_kinds,
    sent_messages,
)


async def _open(relay, connection_id):
    ws = create_mock_websocket()
    await relay.open_connection(connection_id, ws)
    ws.send_json.reset_mock()
    return ws


class TestOpenConnection:
    @pytest.mark.asyncio
    async def test_open_announces_connection_id(self, relay):
        ws = create_mock_websocket()

        await relay.open_connection("conn-a", ws)

        assert relay.connections.is_open("conn-a")
        assert sent_messages(ws) == [{"kind": "connection:open", "id": "conn-a"}]


class TestJoinRoom:
    @pytest.mark.asyncio
    async def test_first_joiner_gets_only_the_echo(self, relay):
        ws_a = await _open(relay, "conn-a")
        payload = {"email": "a@x.io", "room": "r1"}

        await relay.join_room("conn-a", "a@x.io", "r1", payload)

        assert sent_messages(ws_a) == [
            {"kind": "room:join", "email": "a@x.io", "room": "r1"}
        ]
        assert relay.identities.lookup_by_identity("a@x.io") == "conn-a"
        assert relay.rooms.members("r1") == {"conn-a"}

    @pytest.mark.asyncio
    async def test_existing_members_are_told_about_newcomer(self, relay):
        ws_a = await _open(relay, "conn-a")
        ws_b = await _open(relay, "conn-b")
        await relay.join_room("conn-a", "a@x.io", "r1", {"email": "a@x.io", "room": "r1"})
        ws_a.send_json.reset_mock()

        await relay.join_room("conn-b", "b@x.io", "r1", {"email": "b@x.io", "room": "r1"})

        assert sent_messages(ws_a) == [
            {"kind": "user:joined", "email": "b@x.io", "id": "conn-b"}
        ]
        assert sent_messages(ws_b) == [
            {"kind": "room:join", "email": "b@x.io", "room": "r1"}
        ]

    @pytest.mark.asyncio
    async def test_echo_carries_extra_fields_verbatim(self, relay):
        ws_a = await _open(relay, "conn-a")
        payload = {"email": "a@x.io", "room": "r1", "meta": {"camera": False}}

        await relay.join_room("conn-a", "a@x.io", "r1", payload)

        assert sent_messages(ws_a)[-1] == {"kind": "room:join", **payload}

    @pytest.mark.asyncio
    async def test_rejoin_does_not_duplicate_membership(self, relay):
        ws_a = await _open(relay, "conn-a")
        ws_b = await _open(relay, "conn-b")
        payload = {"email": "b@x.io", "room": "r1"}
        await relay.join_room("conn-a", "a@x.io", "r1", {"email": "a@x.io", "room": "r1"})
        await relay.join_room("conn-b", "b@x.io", "r1", payload)
        ws_a.send_json.reset_mock()
        ws_b.send_json.reset_mock()

        await relay.join_room("conn-b", "b@x.io", "r1", payload)

        assert relay.rooms.members("r1") == {"conn-a", "conn-b"}
        ws_a.send_json.assert_not_called()
        assert sent_kinds(ws_b) == ["room:join"]

    @pytest.mark.asyncio
    async def test_joiners_in_other_rooms_are_not_told(self, relay):
        ws_a = await _open(relay, "conn-a")
        await _open(relay, "conn-b")
        await relay.join_room("conn-a", "a@x.io", "r1", {"email": "a@x.io", "room": "r1"})
        ws_a.send_json.reset_mock()

        await relay.join_room("conn-b", "b@x.io", "r2", {"email": "b@x.io", "room": "r2"})

        ws_a.send_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_join_waits_for_pending_mutation(self, relay):
        await _open(relay, "conn-a")
        payload = {"email": "a@x.io", "room": "r1"}

        async with relay._lock:
            join = asyncio.create_task(
                relay.join_room("conn-a", "a@x.io", "r1", payload)
            )
            await asyncio.sleep(0)
            await asyncio.sleep(0)

            assert not join.done()
            assert relay.rooms.members("r1") == set()
            assert relay.identities.lookup_by_identity("a@x.io") is None

        await join
        assert relay.rooms.members("r1") == {"conn-a"}
        assert relay.identities.lookup_by_identity("a@x.io") == "conn-a"

    @pytest.mark.asyncio
    async def test_mutations_run_under_lock(self, relay):
        await _open(relay, "conn-a")
        lock_held = []
        original_join = relay.rooms.join

        def tracking_join(room_id, connection_id):
            lock_held.append(relay._lock.locked())
            return original_join(room_id, connection_id)

        with patch.object(relay.rooms, "join", side_effect=tracking_join):
            await relay.join_room(
                "conn-a", "a@x.io", "r1", {"email": "a@x.io", "room": "r1"}
            )

        assert lock_held == [True]

    @pytest.mark.asyncio
    async def test_concurrent_joins_queue_behind_lock(self, relay):
        connection_ids = [f"conn-{i}" for i in range(20)]
        for connection_id in connection_ids:
            await _open(relay, connection_id)

        async with relay._lock:
            joins = [
                asyncio.create_task(
                    relay.join_room(
                        connection_id,
                        f"{connection_id}@x.io",
                        f"room-{i % 3}",
                        {"email": f"{connection_id}@x.io", "room": f"room-{i % 3}"},
                    )
                )
                for i, connection_id in enumerate(connection_ids)
            ]
            await asyncio.sleep(0)
            assert relay.rooms.room_count == 0

        await asyncio.gather(*joins)

        assert sum(len(relay.rooms.members(f"room-{i}")) for i in range(3)) == 20
        for connection_id in connection_ids:
            assert (
                relay.identities.lookup_by_identity(f"{connection_id}@x.io")
                == connection_id
            )


class TestLeaveRoom:
    @pytest.mark.asyncio
    async def test_leave_notifies_remaining_members(self, relay):
        ws_a = await _open(relay, "conn-a")
        ws_b = await _open(relay, "conn-b")
        await relay.join_room("conn-a", "a@x.io", "r1", {"email": "a@x.io", "room": "r1"})
        await relay.join_room("conn-b", "b@x.io", "r1", {"email": "b@x.io", "room": "r1"})
        ws_a.send_json.reset_mock()
        ws_b.send_json.reset_mock()

        await relay.leave_room("conn-b", "r1")

        assert sent_messages(ws_a) == [
            {"kind": "user:left", "email": "b@x.io", "id": "conn-b"}
        ]
        ws_b.send_json.assert_not_called()
        assert relay.rooms.members("r1") == {"conn-a"}
        # Leaving a room keeps the identity for the live connection
        assert relay.identities.lookup_by_connection("conn-b") == "b@x.io"

    @pytest.mark.asyncio
    async def test_leave_room_not_joined(self, relay):
        ws_a = await _open(relay, "conn-a")

        await relay.leave_room("conn-a", "r1")

        ws_a.send_json.assert_not_called()


class TestForward:
    @pytest.mark.asyncio
    async def test_forward_is_addressee_exact(self, relay):
        ws_a = await _open(relay, "conn-a")
        ws_b = await _open(relay, "conn-b")
        ws_c = await _open(relay, "conn-c")

        delivered = await relay.forward(
            "conn-a", "conn-b", OutboundEvent.INCOMING_CALL, offer="O1"
        )

        assert delivered is True
        assert sent_messages(ws_b) == [
            {"kind": "incoming:call", "from": "conn-a", "offer": "O1"}
        ]
        ws_a.send_json.assert_not_called()
        ws_c.send_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_forward_passes_structured_payload_unchanged(self, relay):
        await _open(relay, "conn-a")
        ws_b = await _open(relay, "conn-b")
        offer = {"type": "offer", "sdp": "v=0\r\no=- 46117 2 IN IP4 127.0.0.1\r\n"}

        await relay.forward("conn-a", "conn-b", OutboundEvent.INCOMING_CALL, offer=offer)

        assert sent_messages(ws_b)[0]["offer"] == offer

    @pytest.mark.asyncio
    async def test_forward_keeps_float_payload_values(self, relay):
        await _open(relay, "conn-a")
        ws_b = await _open(relay, "conn-b")

        await relay.forward(
            "conn-a", "conn-b", OutboundEvent.INCOMING_CALL, offer={"x": float("nan")}
        )

        assert math.isnan(sent_messages(ws_b)[0]["offer"]["x"])

    @pytest.mark.asyncio
    async def test_forward_to_unknown_connection_is_dropped(self, relay):
        ws_a = await _open(relay, "conn-a")

        delivered = await relay.forward(
            "conn-a", "conn-missing", OutboundEvent.CALL_ACCEPTED, ans="S1"
        )

        assert delivered is False
        ws_a.send_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_forward_resolves_identity(self, relay):
        await _open(relay, "conn-a")
        ws_b = await _open(relay, "conn-b")
        relay.identities.set_mapping("b@x.io", "conn-b")

        delivered = await relay.forward(
            "conn-a", "b@x.io", OutboundEvent.INCOMING_CALL, offer="O1"
        )

        assert delivered is True
        assert sent_messages(ws_b)[0]["from"] == "conn-a"

    @pytest.mark.asyncio
    async def test_forward_to_failed_transport(self, relay):
        await _open(relay, "conn-a")
        relay.connections.connect("conn-b", create_failing_websocket())

        delivered = await relay.forward(
            "conn-a", "conn-b", OutboundEvent.PEER_NEGO_FINAL, ans="S2"
        )

        assert delivered is False
        assert not relay.connections.is_open("conn-b")

    def test_resolve_addressee(self, relay):
        relay.connections.connect("conn-a", create_mock_websocket())
        relay.identities.set_mapping("gone@x.io", "conn-gone")

        assert relay.resolve_addressee("conn-a") == "conn-a"
        assert relay.resolve_addressee("gone@x.io") is None
        assert relay.resolve_addressee("nobody") is None
        assert relay.resolve_addressee(42) is None
        assert relay.resolve_addressee(None) is None


class TestCloseConnection:
    @pytest.mark.asyncio
    async def test_close_reclaims_everything(self, relay):
        ws_a = await _open(relay, "conn-a")
        await _open(relay, "conn-b")
        await relay.join_room("conn-a", "a@x.io", "r1", {"email": "a@x.io", "room": "r1"})
        await relay.join_room("conn-b", "b@x.io", "r1", {"email": "b@x.io", "room": "r1"})
        await relay.join_room("conn-b", "b@x.io", "r2", {"email": "b@x.io", "room": "r2"})
        ws_a.send_json.reset_mock()

        await relay.close_connection("conn-b")

        assert not relay.connections.is_open("conn-b")
        assert relay.rooms.rooms_of("conn-b") == set()
        assert relay.rooms.members("r1") == {"conn-a"}
        assert "r2" not in relay.rooms.rooms
        assert relay.identities.lookup_by_identity("b@x.io") is None
        assert relay.identities.lookup_by_connection("conn-b") is None
        assert sent_messages(ws_a) == [
            {"kind": "user:left", "email": "b@x.io", "id": "conn-b"}
        ]

    @pytest.mark.asyncio
    async def test_closed_connection_is_unreachable(self, relay):
        await _open(relay, "conn-a")
        await _open(relay, "conn-b")
        relay.identities.set_mapping("b@x.io", "conn-b")

        await relay.close_connection("conn-b")

        assert relay.resolve_addressee("conn-b") is None
        assert relay.resolve_addressee("b@x.io") is None
        assert (
            await relay.forward("conn-a", "conn-b", OutboundEvent.INCOMING_CALL, offer="O")
            is False
        )

    @pytest.mark.asyncio
    async def test_close_of_stale_connection_keeps_reconnected_identity(self, relay):
        await _open(relay, "conn-old")
        await _open(relay, "conn-new")
        await relay.join_room("conn-old", "a@x.io", "r1", {"email": "a@x.io", "room": "r1"})
        await relay.join_room("conn-new", "a@x.io", "r1", {"email": "a@x.io", "room": "r1"})

        await relay.close_connection("conn-old")

        assert relay.identities.lookup_by_identity("a@x.io") == "conn-new"
        assert relay.rooms.members("r1") == {"conn-new"}

    @pytest.mark.asyncio
    async def test_close_unknown_connection(self, relay):
        await relay.close_connection("conn-never")
        assert len(relay.connections) == 0
