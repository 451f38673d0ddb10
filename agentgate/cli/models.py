"""Typed models for agentgate CLI commands."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias

JsonValue: TypeAlias = str | int | float | bool | None | list["JsonValue"] | dict[str, "JsonValue"]
JsonObject: TypeAlias = dict[str, JsonValue]


class SendStatus(str, Enum):
    ACCEPTED = "accepted"
    OK = "ok"
    TIMEOUT = "timeout"
    ERROR = "error"

    @property
    def succeeded(self) -> bool:
        return self in (SendStatus.OK, SendStatus.ACCEPTED)


@dataclass(frozen=True)
class SendRequest:
    session_key: str
    message: str
    timeout_seconds: int


@dataclass(frozen=True)
class SessionsSendResult:
    run_id: str
    status: SendStatus
    session_key: str
    reply: str | None = None
    error: str | None = None

    def to_json(self) -> JsonObject:
        """Wire shape: runId, status, sessionKey, reply?, error?."""
        data: JsonObject = {
            "runId": self.run_id,
            "status": self.status.value,
            "sessionKey": self.session_key,
        }
        if self.reply is not None:
            data["reply"] = self.reply
        if self.error is not None:
            data["error"] = self.error
        return data
