"""
Prometheus metrics for the signaling websocket.

Connection lifecycle, per-kind inbound traffic, routed and dropped messages
and handler latency.
"""

from typing import TypeVar

from prometheus_client import REGISTRY, Counter, Gauge, Histogram

CollectorT = TypeVar("CollectorT", Counter, Gauge, Histogram)


def _collector(
    metric_cls: type[CollectorT],
    name: str,
    doc: str,
    labels: tuple[str, ...] = (),
    **options,
) -> CollectorT:
    """
    Register a collector, or return the one already registered under `name`.

    Module reloads (uvicorn --reload, test re-imports) would otherwise fail
    with a duplicate timeseries error.
    """
    existing = REGISTRY._names_to_collectors.get(name)
    if isinstance(existing, metric_cls):
        return existing
    return metric_cls(name, doc, labels, **options)


# Connections
ws_connections_active = _collector(
    Gauge, "ws_connections_active", "Number of active WebSocket connections"
)

ws_connections_total = _collector(
    Counter,
    "ws_connections_total",
    "Total WebSocket connections",
    ("status",),  # accepted, closed
)

# Inbound messages
ws_messages_received_total = _collector(
    Counter,
    "ws_messages_received_total",
    "Total WebSocket messages received",
    ("kind",),
)

ws_message_processing_duration_seconds = _collector(
    Histogram,
    "ws_message_processing_duration_seconds",
    "WebSocket message processing duration in seconds",
    ("kind",),
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

# Relay
signaling_rooms_active = _collector(
    Gauge, "signaling_rooms_active", "Number of rooms with at least one member"
)

signaling_messages_routed_total = _collector(
    Counter,
    "signaling_messages_routed_total",
    "Messages delivered to a connection by the relay",
    ("kind",),
)

signaling_messages_dropped_total = _collector(
    Counter,
    "signaling_messages_dropped_total",
    "Inbound messages or deliveries the relay discarded",
    ("reason",),  # malformed, unknown_kind, unknown_addressee, send_failed, error
)
