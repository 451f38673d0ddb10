"""Unit tests for session key resolution and transcript helpers."""

import pytest

from agentgate.config import AgentGateConfig
from agentgate.gateway import GatewayRequestError
from agentgate.sessions.helpers import (
    build_agent_to_agent_message_context,
    extract_assistant_text,
    looks_like_session_id,
    resolve_display_session_key,
    resolve_internal_session_key,
    resolve_main_session_alias,
    resolve_session_reference,
    strip_tool_messages,
)

pytestmark = pytest.mark.unit

SESSION_ID = "0b4c7a8e-3f7d-4d57-9f3e-1c2d3e4f5a6b"


class TestMainSessionAlias:
    def test_defaults(self):
        assert resolve_main_session_alias(AgentGateConfig()) == ("main", "main")

    def test_custom_main_key_is_normalized(self):
        cfg = AgentGateConfig.model_validate({"session": {"main_key": "  Work "}})
        assert resolve_main_session_alias(cfg) == ("work", "work")

    def test_global_scope_uses_global_alias(self):
        cfg = AgentGateConfig.model_validate({"session": {"scope": "global"}})
        assert resolve_main_session_alias(cfg) == ("main", "global")

    def test_internal_and_display_keys(self):
        assert resolve_internal_session_key("main", "global", "main") == "global"
        assert resolve_internal_session_key("agent:x", "global", "main") == "agent:x"
        assert resolve_display_session_key("global", "global", "main") == "main"
        assert resolve_display_session_key("main", "global", "main") == "main"
        assert resolve_display_session_key("agent:x", "global", "main") == "agent:x"


class TestResolveSessionReference:
    def test_plain_key_needs_no_gateway(self):
        def fail_call(method, params):
            raise AssertionError("gateway must not be called")

        result = resolve_session_reference(
            "  agent:webchat:direct:abc ", alias="main", main_key="main", restrict_to_spawned=False, call=fail_call
        )

        assert result.ok is True
        assert result.key == "agent:webchat:direct:abc"
        assert result.display_key == "agent:webchat:direct:abc"
        assert result.resolved_via_session_id is False

    def test_empty_reference_fails(self):
        result = resolve_session_reference(" ", alias="main", main_key="main", restrict_to_spawned=False)
        assert result.ok is False
        assert result.error == "Session key is required"

    def test_session_id_resolves_through_gateway(self):
        calls = []

        def fake_call(method, params):
            calls.append((method, params))
            return {"ok": True, "key": "agent:main:main"}

        result = resolve_session_reference(
            SESSION_ID, alias="main", main_key="main", restrict_to_spawned=False, call=fake_call
        )

        assert calls == [
            ("sessions.resolve", {"sessionId": SESSION_ID, "includeGlobal": True, "includeUnknown": True})
        ]
        assert result.ok is True
        assert result.key == "agent:main:main"
        assert result.resolved_via_session_id is True

    def test_restricted_lookup_passes_requester(self):
        calls = []

        def fake_call(method, params):
            calls.append(params)
            return {"key": "agent:child"}

        resolve_session_reference(
            SESSION_ID,
            alias="main",
            main_key="main",
            restrict_to_spawned=True,
            requester_internal_key="agent:parent",
            call=fake_call,
        )

        assert calls[0]["spawnedBy"] == "agent:parent"
        assert calls[0]["includeGlobal"] is False

    def test_unknown_session_id(self):
        result = resolve_session_reference(
            SESSION_ID, alias="main", main_key="main", restrict_to_spawned=False, call=lambda m, p: {"ok": True}
        )
        assert result.ok is False
        assert result.error == f"Session not found: {SESSION_ID}"

    def test_lookup_failure(self):
        def failing_call(method, params):
            raise GatewayRequestError("unauthorized")

        result = resolve_session_reference(
            SESSION_ID, alias="main", main_key="main", restrict_to_spawned=False, call=failing_call
        )
        assert result.ok is False
        assert result.error == "Session lookup failed: unauthorized"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(SESSION_ID, True), (SESSION_ID.upper(), True), ("main", False), ("agent:webchat:direct:abc", False)],
)
def test_looks_like_session_id(value, expected):
    assert looks_like_session_id(value) is expected


def test_strip_tool_messages_keeps_order_and_non_dicts():
    messages = [
        {"role": "user", "content": "hi"},
        {"role": "toolResult", "content": "out"},
        "raw",
        {"role": "tool", "content": "out"},
        {"role": "assistant", "content": "done"},
    ]

    assert strip_tool_messages(messages) == [
        {"role": "user", "content": "hi"},
        "raw",
        {"role": "assistant", "content": "done"},
    ]


class TestExtractAssistantText:
    def test_string_content(self):
        assert extract_assistant_text({"role": "assistant", "content": "  Hi there \n"}) == "Hi there"

    def test_text_blocks_are_joined(self):
        message = {
            "role": "assistant",
            "content": [
                {"type": "text", "text": "First"},
                {"type": "toolCall", "name": "exec"},
                {"type": "text", "text": "Second"},
            ],
        }
        assert extract_assistant_text(message) == "First\nSecond"

    def test_thinking_and_reply_tags_are_removed(self):
        message = {"role": "assistant", "content": "[[reply_to_current]] <thinking>\nhmm\n</thinking>Answer"}
        assert extract_assistant_text(message) == "Answer"

    @pytest.mark.parametrize(
        "message",
        [
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "   "},
            {"role": "assistant", "content": [{"type": "image"}]},
            {"role": "assistant"},
            None,
        ],
    )
    def test_no_visible_text(self, message):
        assert extract_assistant_text(message) is None


def test_agent_to_agent_context():
    assert build_agent_to_agent_message_context(target_session_key="main") == (
        "Agent-to-agent message context:\nAgent 2 (target) session: main."
    )
    assert build_agent_to_agent_message_context(
        target_session_key="agent:b", requester_session_key="agent:a", requester_channel="discord"
    ) == (
        "Agent-to-agent message context:\n"
        "Agent 1 (requester) session: agent:a.\n"
        "Agent 1 (requester) channel: discord.\n"
        "Agent 2 (target) session: agent:b."
    )
