"""
Pytest configuration and fixtures for testing.

The relay keeps its state in module-level singletons, so every test starts
and ends with them emptied.
"""

import pytest
from fastapi.testclient import TestClient

from rendezvous.managers.connection_manager import ConnectionManager
from rendezvous.managers.identity_index import IdentityIndex
from rendezvous.managers.room_registry import RoomRegistry
from rendezvous.managers.signaling_relay import SignalingRelay, signaling_relay


def _reset_relay_state():
    signaling_relay.connections.connections.clear()
    signaling_relay.rooms.rooms.clear()
    signaling_relay.rooms._memberships.clear()
    signaling_relay.identities._by_identity.clear()
    signaling_relay.identities._by_connection.clear()


@pytest.fixture(autouse=True)
def clean_relay_state():
    """Empty the shared connection, room and identity state around each test."""
    _reset_relay_state()
    yield
    _reset_relay_state()


@pytest.fixture
def relay():
    """
    Provides an isolated SignalingRelay wired to fresh managers.

    Returns:
        SignalingRelay: Relay instance not shared with the application
    """
    connections = ConnectionManager()
    return SignalingRelay(
        connections, RoomRegistry(connections), IdentityIndex()
    )


@pytest.fixture
def client():
    """
    Provides a TestClient running the full application.

    Entering the client as a context manager keeps one event loop for all
    websocket sessions opened through it, so sessions can talk to each other.

    Yields:
        TestClient: Client for HTTP requests and websocket sessions
    """
    from rendezvous import app

    with TestClient(app) as test_client:
        yield test_client
