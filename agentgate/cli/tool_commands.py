"""CLI subcommand handlers for agentgate session commands.

Commands talk to the agent gateway via call_gateway(). Validation and
resolution errors go to stderr with exit code 1; gateway failures are folded
into the command result and rendered like any other outcome.

Handler naming: handle_{group}_{subcommand} for grouped commands,
handle_{command} for top-level commands.
"""

from __future__ import annotations

import json
import logging
import re
import sys

from pydantic import ValidationError

from agentgate.cli.models import JsonValue, SendRequest, SendStatus, SessionsSendResult
from agentgate.config import AgentGateConfig, load_config
from agentgate.constants import (
    AGENT_LANE_NESTED,
    AGENT_SEND_TIMEOUT_MS,
    AGENT_WAIT_GRACE_MS,
    CHAT_HISTORY_LIMIT,
    DEFAULT_GATEWAY_TIMEOUT_MS,
    DEFAULT_SEND_TIMEOUT_SECONDS,
    INTERNAL_MESSAGE_CHANNEL,
)
from agentgate.gateway import GatewayError, GatewayTimeoutError, call_gateway, random_idempotency_key
from agentgate.sessions.helpers import (
    SessionResolution,
    build_agent_to_agent_message_context,
    extract_assistant_text,
    resolve_main_session_alias,
    resolve_session_reference,
    strip_tool_messages,
)

logger = logging.getLogger(__name__)

_LEADING_INT_RE = re.compile(r"^\s*([+-]?)(\d+)")

# =============================================================================
# Sessions group
# =============================================================================


def handle_sessions(args: list[str]) -> None:
    """Handle agentgate sessions <subcommand> [args].

    Subcommands:
      send        Send a message to a session and optionally wait for the reply
    """
    if not args or args[0] in ("-h", "--help"):
        _sessions_help()
        return

    sub = args[0]
    rest = args[1:]

    if sub == "send":
        handle_sessions_send(rest)
    else:
        print(f"Unknown sessions subcommand: {sub}", file=sys.stderr)
        print("Run 'agentgate sessions --help' for usage.", file=sys.stderr)
        raise SystemExit(1)


def _sessions_help() -> None:
    print(
        """Usage: agentgate sessions <subcommand> [args]

Subcommands:
  send         Send a message to a session and optionally wait for the reply

Run 'agentgate sessions <subcommand> --help' for subcommand-specific help."""
    )


def print_json(data: JsonValue) -> None:
    """Print data as formatted JSON to stdout."""
    print(json.dumps(data, indent=2, ensure_ascii=False))


def handle_sessions_send(args: list[str]) -> None:
    """Send a message to a session.

    Usage: agentgate sessions send --session <key> --message <text>
                                   [--timeout <seconds>] [--json]
                                   OR
           agentgate sessions send <key> <message> [--timeout <seconds>] [--json]

    Delivers the message to the agent behind the session. By default waits up
    to 30 seconds for the run to finish and prints the agent's reply.

    Options:
      --session, -s <key>   Session key, "main", or a session id
      --message <text>      Message text
      --timeout <seconds>   Seconds to wait for the reply (0 = do not wait)
      --json                Print the result as JSON

    Examples:
      agentgate sessions send --session main --message "Summarize the backlog"
      agentgate sessions send agent:webchat:direct:abc "Hello" --timeout 0
      agentgate sessions send -s main --message "Status?" --json
    """
    session_input: str | None = None
    message_input: str | None = None
    timeout_input: str | None = None
    as_json = False
    positional: list[str] = []

    i = 0
    while i < len(args):
        arg = args[i]
        flag, has_inline_value, inline_value = arg.partition("=") if arg.startswith("--") else (arg, "", "")
        if flag in ("--session", "-s", "--message", "--timeout"):
            if has_inline_value:
                value = inline_value
                i += 1
            elif i + 1 < len(args):
                value = args[i + 1]
                i += 2
            else:
                print(f"Error: {flag} requires a value", file=sys.stderr)
                raise SystemExit(1)
            if flag == "--message":
                message_input = value
            elif flag == "--timeout":
                timeout_input = value
            else:
                session_input = value
        elif arg in ("-h", "--help"):
            print(handle_sessions_send.__doc__ or "")
            return
        elif arg == "--json":
            as_json = True
            i += 1
        elif arg.startswith("-") and arg != "-":
            print(f"Error: unknown option: {arg}", file=sys.stderr)
            print("Run 'agentgate sessions send --help' for usage.", file=sys.stderr)
            raise SystemExit(1)
        else:
            positional.append(arg)
            i += 1

    # Positional: agentgate sessions send <session> <message...>
    if positional and session_input is None:
        session_input = positional.pop(0)
    if positional and message_input is None:
        message_input = " ".join(positional)

    session_key = (session_input or "").strip()
    if not session_key:
        print("Error: --session <sessionKey> is required", file=sys.stderr)
        raise SystemExit(1)
    message = (message_input or "").strip()
    if not message:
        print("Error: --message <text> is required", file=sys.stderr)
        raise SystemExit(1)

    timeout_seconds = parse_timeout_seconds(timeout_input)
    if timeout_seconds is None:
        print("Error: --timeout must be a non-negative integer (seconds)", file=sys.stderr)
        raise SystemExit(1)

    request = SendRequest(session_key=session_key, message=message, timeout_seconds=timeout_seconds)

    try:
        cfg = load_config()
    except ValidationError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        raise SystemExit(1)
    main_key, alias = resolve_main_session_alias(cfg)
    resolution = resolve_session_reference(
        request.session_key,
        alias=alias,
        main_key=main_key,
        restrict_to_spawned=False,
        call=lambda method, params: call_gateway(method, params, config=cfg),
    )
    if not resolution.ok:
        print(resolution.error or "Session resolution failed", file=sys.stderr)
        raise SystemExit(1)

    result = send_session_message(request, resolution, cfg)
    render_sessions_send_result(result, as_json=as_json)


def parse_timeout_seconds(raw: str | int | None) -> int | None:
    """Parse the --timeout value.

    Absent or empty means the default. Otherwise the leading base-10 integer
    is used ("45s" -> 45). Returns None for non-numeric or negative input.
    """
    if raw is None or raw == "":
        return DEFAULT_SEND_TIMEOUT_SECONDS
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 0 else None

    match = _LEADING_INT_RE.match(raw)
    if not match:
        return None
    value = int(match.group(2))
    if match.group(1) == "-" and value != 0:
        return None
    return value


def _is_gateway_timeout(exc: Exception) -> bool:
    # Message check covers transports that only report timeouts as text.
    return isinstance(exc, GatewayTimeoutError) or "gateway timeout" in str(exc)


def _error_text(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


def send_session_message(
    request: SendRequest,
    resolution: SessionResolution,
    cfg: AgentGateConfig,
) -> SessionsSendResult:
    """Send the message and, unless fire-and-forget, wait for the reply.

    Every gateway failure ends up in the returned result; nothing is retried.
    """
    display_key = resolution.display_key
    idempotency_key = random_idempotency_key()
    run_id = idempotency_key

    send_params = {
        "message": request.message,
        "sessionKey": resolution.key,
        "idempotencyKey": idempotency_key,
        "deliver": False,
        "channel": INTERNAL_MESSAGE_CHANNEL,
        "lane": AGENT_LANE_NESTED,
        "extraSystemPrompt": build_agent_to_agent_message_context(target_session_key=display_key),
    }

    logger.debug("sending to %s (timeout=%ss)", resolution.key, request.timeout_seconds)
    try:
        response = call_gateway("agent", send_params, timeout_ms=AGENT_SEND_TIMEOUT_MS, config=cfg)
    except (GatewayError, OSError) as e:
        logger.debug("agent call failed: %s", e)
        return SessionsSendResult(run_id=run_id, status=SendStatus.ERROR, session_key=display_key, error=_error_text(e))

    if isinstance(response, dict):
        returned_run_id = response.get("runId")
        if isinstance(returned_run_id, str) and returned_run_id:
            run_id = returned_run_id

    if request.timeout_seconds == 0:
        return SessionsSendResult(run_id=run_id, status=SendStatus.ACCEPTED, session_key=display_key)

    wait_timeout_ms = request.timeout_seconds * 1000
    try:
        wait = call_gateway(
            "agent.wait",
            {"runId": run_id, "timeoutMs": wait_timeout_ms},
            timeout_ms=wait_timeout_ms + AGENT_WAIT_GRACE_MS,
            config=cfg,
        )
    except (GatewayError, OSError) as e:
        status = SendStatus.TIMEOUT if _is_gateway_timeout(e) else SendStatus.ERROR
        logger.debug("agent.wait failed for run %s: %s", run_id, e)
        return SessionsSendResult(run_id=run_id, status=status, session_key=display_key, error=_error_text(e))

    wait_status = wait.get("status") if isinstance(wait, dict) else None
    wait_error = wait.get("error") if isinstance(wait, dict) else None
    if not isinstance(wait_error, str):
        wait_error = None

    if wait_status == SendStatus.TIMEOUT.value:
        return SessionsSendResult(run_id=run_id, status=SendStatus.TIMEOUT, session_key=display_key, error=wait_error)
    if wait_status == SendStatus.ERROR.value:
        return SessionsSendResult(
            run_id=run_id,
            status=SendStatus.ERROR,
            session_key=display_key,
            error=wait_error or "agent error",
        )

    try:
        history = call_gateway(
            "chat.history",
            {"sessionKey": resolution.key, "limit": CHAT_HISTORY_LIMIT},
            timeout_ms=DEFAULT_GATEWAY_TIMEOUT_MS,
            config=cfg,
        )
    except (GatewayError, OSError) as e:
        logger.debug("chat.history failed for %s: %s", resolution.key, e)
        return SessionsSendResult(run_id=run_id, status=SendStatus.ERROR, session_key=display_key, error=_error_text(e))

    messages = history.get("messages") if isinstance(history, dict) else None
    filtered = strip_tool_messages(messages if isinstance(messages, list) else [])
    reply = extract_assistant_text(filtered[-1]) if filtered else None
    return SessionsSendResult(run_id=run_id, status=SendStatus.OK, session_key=display_key, reply=reply)


def render_sessions_send_result(result: SessionsSendResult, *, as_json: bool) -> None:
    """Print a send result; exits 1 unless the status is ok or accepted."""
    if as_json:
        print_json(result.to_json())
        if not result.status.succeeded:
            raise SystemExit(1)
        return

    match result.status:
        case SendStatus.TIMEOUT | SendStatus.ERROR:
            print(result.error or "Session send failed", file=sys.stderr)
            raise SystemExit(1)
        case SendStatus.ACCEPTED:
            print(f"Queued message for session {result.session_key}.")
        case SendStatus.OK if result.reply:
            print(result.reply)
        case SendStatus.OK:
            print(f"Message sent to session {result.session_key}.")
