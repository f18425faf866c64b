"""
Application-level constants for hardcoded relay behavior.

These values are part of the signaling protocol and should NEVER be changed
via environment variables. For configurable values (bind address, message
size limit, logging), see rendezvous/settings.py.
"""

# ============================================================================
# Envelope
# ============================================================================

# Key holding the message kind in every inbound and outbound envelope
ENVELOPE_KIND_KEY = "kind"

# Key the relay uses to tag routed messages with the sender's ConnectionId.
# A value supplied by the client under this key is always overwritten.
ENVELOPE_SENDER_KEY = "from"


# ============================================================================
# Logging
# ============================================================================

# Upper bound for a single JSON log line written to the error log file
MAX_LOG_SIZE_BYTES = 250_000
