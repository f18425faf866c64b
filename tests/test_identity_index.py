"""
Tests for the bidirectional identity index.

Every test checks both lookup directions, since the index must never let
them disagree.
"""

from rendezvous.managers.identity_index import IdentityIndex


def assert_consistent(index: IdentityIndex):
    for identity, connection_id in index._by_identity.items():
        assert index._by_connection[connection_id] == identity
    for connection_id, identity in index._by_connection.items():
        assert index._by_identity[identity] == connection_id


class TestIdentityIndex:
    def test_set_mapping(self):
        index = IdentityIndex()

        index.set_mapping("alice@x.io", "conn-a")

        assert index.lookup_by_identity("alice@x.io") == "conn-a"
        assert index.lookup_by_connection("conn-a") == "alice@x.io"
        assert len(index) == 1
        assert_consistent(index)

    def test_lookups_of_unknown_keys(self):
        index = IdentityIndex()
        assert index.lookup_by_identity("nobody") is None
        assert index.lookup_by_connection("conn-x") is None

    def test_identity_reconnect_overwrites_stale_connection(self):
        """Last write wins and the stale connection loses its reverse entry."""
        index = IdentityIndex()
        index.set_mapping("alice@x.io", "conn-old")

        index.set_mapping("alice@x.io", "conn-new")

        assert index.lookup_by_identity("alice@x.io") == "conn-new"
        assert index.lookup_by_connection("conn-old") is None
        assert index.lookup_by_connection("conn-new") == "alice@x.io"
        assert_consistent(index)

    def test_connection_relabel_drops_previous_identity(self):
        index = IdentityIndex()
        index.set_mapping("alice@x.io", "conn-a")

        index.set_mapping("alice.work@x.io", "conn-a")

        assert index.lookup_by_identity("alice@x.io") is None
        assert index.lookup_by_identity("alice.work@x.io") == "conn-a"
        assert len(index) == 1
        assert_consistent(index)

    def test_same_mapping_twice_is_noop(self):
        index = IdentityIndex()
        index.set_mapping("alice@x.io", "conn-a")
        index.set_mapping("alice@x.io", "conn-a")

        assert len(index) == 1
        assert_consistent(index)

    def test_remove_by_connection(self):
        index = IdentityIndex()
        index.set_mapping("alice@x.io", "conn-a")
        index.set_mapping("bob@x.io", "conn-b")

        removed = index.remove_by_connection("conn-a")

        assert removed == "alice@x.io"
        assert index.lookup_by_identity("alice@x.io") is None
        assert index.lookup_by_connection("conn-a") is None
        assert index.lookup_by_identity("bob@x.io") == "conn-b"
        assert_consistent(index)

    def test_remove_stale_connection_keeps_new_mapping(self):
        """Cleanup of an old connection must not unmap a reconnected identity."""
        index = IdentityIndex()
        index.set_mapping("alice@x.io", "conn-old")
        index.set_mapping("alice@x.io", "conn-new")

        removed = index.remove_by_connection("conn-old")

        assert removed is None
        assert index.lookup_by_identity("alice@x.io") == "conn-new"
        assert_consistent(index)

    def test_remove_unknown_connection(self):
        index = IdentityIndex()
        assert index.remove_by_connection("conn-x") is None
