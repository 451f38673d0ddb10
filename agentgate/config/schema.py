from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agentgate.constants import DEFAULT_GATEWAY_BIND_HOST, DEFAULT_GATEWAY_PORT, DEFAULT_MAIN_KEY


class GatewayAuthConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    token: Optional[str] = None
    password: Optional[str] = None


class GatewayConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    url: Optional[str] = None  # Full ws:// or wss:// URL; wins over bind_host/port
    port: int = Field(default=DEFAULT_GATEWAY_PORT, ge=1, le=65535)
    bind_host: str = DEFAULT_GATEWAY_BIND_HOST
    auth: GatewayAuthConfig = Field(default_factory=GatewayAuthConfig)

    @field_validator("url")
    @classmethod
    def validate_url_scheme(cls, v: Optional[str]) -> Optional[str]:
        """Only WebSocket URLs are accepted."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            return None
        if not v.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid gateway url: {v}. Expected ws:// or wss://")
        return v


class SessionConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    main_key: str = DEFAULT_MAIN_KEY
    scope: Literal["per-sender", "global"] = "per-sender"


class AgentGateConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
