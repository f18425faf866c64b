"""
Prometheus metrics definitions.

All metrics are re-exported here so callers import from one place:

    from rendezvous.utils.metrics import ws_connections_active
"""

from rendezvous.utils.metrics.websocket import (
    signaling_messages_dropped_total,
    signaling_messages_routed_total,
    signaling_rooms_active,
    ws_connections_active,
    ws_connections_total,
    ws_message_processing_duration_seconds,
    ws_messages_received_total,
)

__all__ = [
    "signaling_messages_dropped_total",
    "signaling_messages_routed_total",
    "signaling_rooms_active",
    "ws_connections_active",
    "ws_connections_total",
    "ws_message_processing_duration_seconds",
    "ws_messages_received_total",
]
