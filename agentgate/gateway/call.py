"""Synchronous RPC client for the agent gateway.

Every call is one short-lived WebSocket connection:
  1. open the socket (bounded by the call deadline)
  2. send a `connect` handshake request carrying client identity and auth
  3. send the method request and wait for the response frame with its id
  4. close

Frames are JSON objects:
  request   {"type": "req", "id": ..., "method": ..., "params": ...}
  response  {"type": "res", "id": ..., "ok": bool, "payload": ..., "error": {"code", "message"}}
  event     {"type": "event", "event": ..., "payload": ...}  (ignored here)
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from typing import Callable

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import ClientConnection, connect

from agentgate import __version__
from agentgate.config import AgentGateConfig, load_config, resolve_gateway_url
from agentgate.constants import (
    DEFAULT_GATEWAY_TIMEOUT_MS,
    GATEWAY_CLIENT_ID,
    GATEWAY_CLIENT_MODE,
    GATEWAY_CLIENT_ROLE,
    GATEWAY_PROTOCOL_VERSION,
    MAX_TRANSPORT_WAIT_S,
)

logger = logging.getLogger(__name__)

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


class GatewayError(Exception):
    """Base class for gateway transport and request failures."""


class GatewayTimeoutError(GatewayError):
    """The call did not complete within its transport timeout."""

    def __init__(self, timeout_ms: int):
        super().__init__(f"gateway timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class GatewayConnectionError(GatewayError):
    """The gateway socket could not be opened."""


class GatewayClosedError(GatewayError):
    """The gateway closed the socket before answering."""

    def __init__(self, code: int, reason: str):
        super().__init__(f"gateway closed ({code}): {reason}" if reason else f"gateway closed ({code})")
        self.code = code
        self.reason = reason


class GatewayRequestError(GatewayError):
    """The gateway answered with ok=false."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


def random_idempotency_key() -> str:
    """Return a fresh idempotency key for a gateway request."""
    return str(uuid.uuid4())


class GatewayClient:
    """One-shot request/response client for the gateway WebSocket."""

    def __init__(
        self,
        url: str,
        *,
        token: str | None = None,
        password: str | None = None,
        connect_fn: Callable[..., ClientConnection] | None = None,
    ):
        self.url = url
        self.token = token
        self.password = password
        self._connect = connect_fn or connect

    @classmethod
    def from_config(cls, cfg: AgentGateConfig) -> GatewayClient:
        return cls(
            resolve_gateway_url(cfg),
            token=cfg.gateway.auth.token,
            password=cfg.gateway.auth.password,
        )

    def _connect_params(self) -> dict[str, object]:
        params: dict[str, object] = {
            "minProtocol": GATEWAY_PROTOCOL_VERSION,
            "maxProtocol": GATEWAY_PROTOCOL_VERSION,
            "client": {
                "id": GATEWAY_CLIENT_ID,
                "displayName": "agentgate",
                "version": __version__,
                "platform": sys.platform,
                "mode": GATEWAY_CLIENT_MODE,
            },
            "role": GATEWAY_CLIENT_ROLE,
        }
        auth: dict[str, str] = {}
        if self.token:
            auth["token"] = self.token
        if self.password:
            auth["password"] = self.password
        if auth:
            params["auth"] = auth
        return params

    def request(
        self,
        method: str,
        params: object = None,
        timeout_ms: int = DEFAULT_GATEWAY_TIMEOUT_MS,
    ) -> object:
        """Call a gateway method and return its payload.

        Args:
            method: Gateway method name (e.g. "agent", "agent.wait")
            params: JSON-serializable request params
            timeout_ms: Upper bound for the whole call, handshake included

        Returns:
            The response payload (any JSON value).

        Raises:
            GatewayTimeoutError: Deadline exceeded.
            GatewayConnectionError: Socket could not be opened.
            GatewayClosedError: Socket closed before the response arrived.
            GatewayRequestError: Gateway reported a failure for the request.
        """
        deadline = time.monotonic() + timeout_ms / 1000
        started = time.monotonic()
        logger.debug("gateway call %s -> %s (timeout=%dms)", method, self.url, timeout_ms)

        try:
            ws = self._connect(self.url, open_timeout=self._remaining(deadline, timeout_ms))
        except TimeoutError as e:
            raise GatewayTimeoutError(timeout_ms) from e
        except (OSError, WebSocketException) as e:
            raise GatewayConnectionError(f"gateway connect failed: {e}") from e

        with ws:
            self._exchange(ws, "connect", self._connect_params(), deadline, timeout_ms)
            payload = self._exchange(ws, method, params, deadline, timeout_ms)

        logger.debug("gateway call %s ok in %.0fms", method, (time.monotonic() - started) * 1000)
        return payload

    def _exchange(
        self,
        ws: ClientConnection,
        method: str,
        params: object,
        deadline: float,
        timeout_ms: int,
    ) -> object:
        request_id = str(uuid.uuid4())
        frame: dict[str, object] = {"type": "req", "id": request_id, "method": method}
        if params is not None:
            frame["params"] = params

        try:
            ws.send(json.dumps(frame))
            response = self._await_response(ws, request_id, deadline, timeout_ms)
        except ConnectionClosed as e:
            close_code = e.rcvd.code if e.rcvd is not None else 1006
            close_reason = e.rcvd.reason if e.rcvd is not None else ""
            raise GatewayClosedError(close_code, close_reason) from e

        if response.get("ok") is True:
            return response.get("payload")

        error = response.get("error")
        message = f"gateway request failed: {method}"
        code: str | None = None
        if isinstance(error, dict):
            if isinstance(error.get("message"), str) and error["message"]:
                message = error["message"]
            if isinstance(error.get("code"), str):
                code = error["code"]
        logger.debug("gateway call %s failed: %s (code=%s)", method, message, code)
        raise GatewayRequestError(message, code=code)

    def _await_response(
        self,
        ws: ClientConnection,
        request_id: str,
        deadline: float,
        timeout_ms: int,
    ) -> dict[str, object]:
        while True:
            try:
                raw = ws.recv(timeout=self._remaining(deadline, timeout_ms))
            except TimeoutError as e:
                if time.monotonic() < deadline:
                    continue
                raise GatewayTimeoutError(timeout_ms) from e

            if isinstance(raw, bytes):
                raw = raw.decode("utf-8", errors="replace")
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON from gateway: %s", raw[:100])
                continue
            if not isinstance(frame, dict):
                continue
            if frame.get("type") == "res" and frame.get("id") == request_id:
                return frame
            if frame.get("type") == "event":
                logger.debug("ignoring gateway event %s", frame.get("event"))

    @staticmethod
    def _remaining(deadline: float, timeout_ms: int) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise GatewayTimeoutError(timeout_ms)
        # Socket and event waits overflow past the platform limit.
        return min(remaining, MAX_TRANSPORT_WAIT_S)


def call_gateway(
    method: str,
    params: object = None,
    *,
    timeout_ms: int = DEFAULT_GATEWAY_TIMEOUT_MS,
    config: AgentGateConfig | None = None,
) -> object:
    """Call a gateway method using the configured connection details."""
    cfg = config if config is not None else load_config()
    return GatewayClient.from_config(cfg).request(method, params, timeout_ms=timeout_ms)
