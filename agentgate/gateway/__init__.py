"""Gateway RPC client."""

from agentgate.gateway.call import (
    GatewayClient,
    GatewayClosedError,
    GatewayConnectionError,
    GatewayError,
    GatewayRequestError,
    GatewayTimeoutError,
    call_gateway,
    random_idempotency_key,
)

__all__ = [
    "GatewayClient",
    "GatewayClosedError",
    "GatewayConnectionError",
    "GatewayError",
    "GatewayRequestError",
    "GatewayTimeoutError",
    "call_gateway",
    "random_idempotency_key",
]
