"""Session key resolution and transcript helpers.

Session keys are structured strings such as `agent:webchat:direct:abc`. Two
spellings exist for the main session: the configured main key (default `main`)
and, when sessions are globally scoped, the `global` alias. Outbound calls use
the internal form; everything shown to the operator uses the display form.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from agentgate.config import AgentGateConfig
from agentgate.constants import DEFAULT_MAIN_KEY, GLOBAL_SESSION_ALIAS, TOOL_MESSAGE_ROLES
from agentgate.gateway import GatewayError, call_gateway

logger = logging.getLogger(__name__)

_SESSION_ID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
_THINKING_BLOCK_RE = re.compile(r"<\s*(think|thinking)\b[^>]*>.*?<\s*/\s*\1\s*>", re.IGNORECASE | re.DOTALL)
_REPLY_TAG_RE = re.compile(r"\[\[\s*reply_to[^\]]*\]\]", re.IGNORECASE)

GatewayCall = Callable[..., object]


@dataclass(frozen=True)
class SessionResolution:
    """Outcome of resolving a raw session reference."""

    ok: bool
    key: str = ""
    display_key: str = ""
    error: str | None = None
    resolved_via_session_id: bool = False


def normalize_main_key(value: str | None) -> str:
    trimmed = (value or "").strip().lower()
    return trimmed or DEFAULT_MAIN_KEY


def resolve_main_session_alias(cfg: AgentGateConfig) -> tuple[str, str]:
    """Return (main_key, alias) for the configured session scope."""
    main_key = normalize_main_key(cfg.session.main_key)
    alias = GLOBAL_SESSION_ALIAS if cfg.session.scope == "global" else main_key
    return main_key, alias


def resolve_internal_session_key(key: str, alias: str, main_key: str) -> str:
    if key == DEFAULT_MAIN_KEY:
        return alias
    return key


def resolve_display_session_key(key: str, alias: str, main_key: str) -> str:
    if key == alias or key == main_key:
        return DEFAULT_MAIN_KEY
    return key


def looks_like_session_id(value: str) -> bool:
    return bool(_SESSION_ID_RE.match(value.strip()))


def resolve_session_reference(
    session_key: str,
    *,
    alias: str,
    main_key: str,
    restrict_to_spawned: bool,
    requester_internal_key: str | None = None,
    call: GatewayCall = call_gateway,
) -> SessionResolution:
    """Resolve a session key or session id to its internal and display keys.

    Session ids (UUIDs) are looked up through the gateway's `sessions.resolve`
    method. Everything else is treated as a session key and only mapped
    between its main-session spellings.

    Args:
        session_key: Raw reference from the operator.
        alias: Main-session alias (see resolve_main_session_alias).
        main_key: Configured main key.
        restrict_to_spawned: Only accept sessions spawned by the requester.
        requester_internal_key: Internal key of the requesting session, if any.
        call: Gateway call function.

    Returns:
        SessionResolution with ok=False and a printable error on failure.
    """
    raw = session_key.strip()
    if not raw:
        return SessionResolution(ok=False, error="Session key is required")

    if looks_like_session_id(raw):
        return _resolve_session_id(
            raw,
            alias=alias,
            main_key=main_key,
            restrict_to_spawned=restrict_to_spawned,
            requester_internal_key=requester_internal_key,
            call=call,
        )

    return SessionResolution(
        ok=True,
        key=resolve_internal_session_key(raw, alias, main_key),
        display_key=resolve_display_session_key(raw, alias, main_key),
    )


def _resolve_session_id(
    session_id: str,
    *,
    alias: str,
    main_key: str,
    restrict_to_spawned: bool,
    requester_internal_key: str | None,
    call: GatewayCall,
) -> SessionResolution:
    params: dict[str, object] = {
        "sessionId": session_id,
        "includeGlobal": not restrict_to_spawned,
        "includeUnknown": not restrict_to_spawned,
    }
    if restrict_to_spawned and requester_internal_key:
        params["spawnedBy"] = requester_internal_key

    try:
        result = call("sessions.resolve", params)
    except GatewayError as e:
        logger.debug("sessions.resolve failed for %s: %s", session_id, e)
        return SessionResolution(ok=False, error=f"Session lookup failed: {e}")

    key = result.get("key") if isinstance(result, dict) else None
    if not isinstance(key, str) or not key.strip():
        return SessionResolution(ok=False, error=f"Session not found: {session_id}")

    key = key.strip()
    return SessionResolution(
        ok=True,
        key=key,
        display_key=resolve_display_session_key(key, alias, main_key),
        resolved_via_session_id=True,
    )


def strip_tool_messages(messages: list[object]) -> list[object]:
    """Drop tool results from a transcript slice."""
    kept: list[object] = []
    for message in messages:
        if isinstance(message, dict) and message.get("role") in TOOL_MESSAGE_ROLES:
            continue
        kept.append(message)
    return kept


def _sanitize_text(text: str) -> str:
    text = _THINKING_BLOCK_RE.sub("", text)
    text = _REPLY_TAG_RE.sub("", text)
    return text.strip()


def extract_assistant_text(message: object) -> str | None:
    """Return the visible text of an assistant message, or None."""
    if not isinstance(message, dict) or message.get("role") != "assistant":
        return None

    content = message.get("content")
    if isinstance(content, str):
        text = _sanitize_text(content)
        return text or None
    if not isinstance(content, list):
        return None

    chunks: list[str] = []
    for block in content:
        if not isinstance(block, dict) or block.get("type") != "text":
            continue
        block_text = block.get("text")
        if isinstance(block_text, str):
            sanitized = _sanitize_text(block_text)
            if sanitized:
                chunks.append(sanitized)
    joined = "\n".join(chunks).strip()
    return joined or None


def build_agent_to_agent_message_context(
    target_session_key: str,
    requester_session_key: str | None = None,
    requester_channel: str | None = None,
) -> str:
    """Build the extra system prompt attached to an agent-to-agent send."""
    lines = ["Agent-to-agent message context:"]
    if requester_session_key:
        lines.append(f"Agent 1 (requester) session: {requester_session_key}.")
    if requester_channel:
        lines.append(f"Agent 1 (requester) channel: {requester_channel}.")
    lines.append(f"Agent 2 (target) session: {target_session_key}.")
    return "\n".join(lines)
