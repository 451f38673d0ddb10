"""Configuration management.

Config is loaded on demand (the CLI calls it once per invocation):
    from agentgate.config import load_config
    cfg = load_config()

Sources, lowest to highest precedence:
    1. Built-in defaults (`agentgate.config.schema`)
    2. `~/.agentgate/agentgate.yml` (or `$AGENTGATE_CONFIG_PATH`)
    3. Environment (`AGENTGATE_GATEWAY_URL`, `AGENTGATE_GATEWAY_PORT`,
       `AGENTGATE_GATEWAY_TOKEN`, `AGENTGATE_GATEWAY_PASSWORD`), which may
       come from a `.env` file (`$AGENTGATE_ENV_PATH`, default `./.env`).
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from agentgate.config.loader import load_global_config
from agentgate.config.schema import AgentGateConfig, GatewayAuthConfig, GatewayConfig, SessionConfig

logger = logging.getLogger(__name__)

__all__ = [
    "AgentGateConfig",
    "GatewayAuthConfig",
    "GatewayConfig",
    "SessionConfig",
    "load_config",
    "resolve_gateway_url",
]


def _load_env_file() -> None:
    env_path = os.getenv("AGENTGATE_ENV_PATH")
    dotenv_path = Path(env_path).expanduser() if env_path else Path.cwd() / ".env"
    # Existing environment wins over .env entries.
    load_dotenv(dotenv_path, override=False)


def _apply_env_overrides(cfg: AgentGateConfig) -> AgentGateConfig:
    gateway = cfg.gateway.model_dump()
    auth = gateway["auth"]

    url = os.getenv("AGENTGATE_GATEWAY_URL", "").strip()
    if url:
        gateway["url"] = url

    port_raw = os.getenv("AGENTGATE_GATEWAY_PORT", "").strip()
    if port_raw:
        try:
            gateway["port"] = int(port_raw)
        except ValueError:
            logger.warning("Ignoring invalid AGENTGATE_GATEWAY_PORT=%r", port_raw)

    token = os.getenv("AGENTGATE_GATEWAY_TOKEN", "").strip()
    if token:
        auth["token"] = token
    password = os.getenv("AGENTGATE_GATEWAY_PASSWORD", "").strip()
    if password:
        auth["password"] = password

    # Re-validate so env values get the same checks as the YAML file.
    return cfg.model_copy(update={"gateway": GatewayConfig.model_validate(gateway)})


def load_config(path: Optional[Path] = None) -> AgentGateConfig:
    """Load configuration from .env, YAML and environment overrides.

    Args:
        path: Explicit YAML path. Defaults to `$AGENTGATE_CONFIG_PATH` or
            `~/.agentgate/agentgate.yml`.

    Returns:
        Validated configuration.
    """
    _load_env_file()
    if path is None:
        configured = os.getenv("AGENTGATE_CONFIG_PATH")
        path = Path(configured).expanduser() if configured else None
    cfg = load_global_config(path)
    return _apply_env_overrides(cfg)


def resolve_gateway_url(cfg: AgentGateConfig) -> str:
    """Return the WebSocket URL of the gateway."""
    if cfg.gateway.url:
        return cfg.gateway.url
    return f"ws://{cfg.gateway.bind_host}:{cfg.gateway.port}"
