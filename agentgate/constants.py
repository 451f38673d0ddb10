"""Constants used across agentgate.

This module defines shared constants to ensure consistency.
"""

# Gateway connection defaults
DEFAULT_GATEWAY_PORT = 18789
DEFAULT_GATEWAY_BIND_HOST = "127.0.0.1"
GATEWAY_PROTOCOL_VERSION = 3
GATEWAY_CLIENT_ID = "agentgate-cli"
GATEWAY_CLIENT_MODE = "cli"
GATEWAY_CLIENT_ROLE = "operator"

# Transport timeouts (milliseconds)
DEFAULT_GATEWAY_TIMEOUT_MS = 10_000
AGENT_SEND_TIMEOUT_MS = 10_000
AGENT_WAIT_GRACE_MS = 2_000  # Added on top of the requested agent.wait window
MAX_TRANSPORT_WAIT_S = 86_400.0  # Longest single socket wait (seconds); the call deadline still applies

# sessions send
DEFAULT_SEND_TIMEOUT_SECONDS = 30
CHAT_HISTORY_LIMIT = 50

# Routing tags (NOT user-configurable)
INTERNAL_MESSAGE_CHANNEL = "webchat"
AGENT_LANE_NESTED = "nested"

# Session keys
DEFAULT_MAIN_KEY = "main"
GLOBAL_SESSION_ALIAS = "global"

# Message roles produced by tool execution
TOOL_MESSAGE_ROLES = frozenset({"toolResult", "tool"})
