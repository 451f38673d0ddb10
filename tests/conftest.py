"""Pytest configuration for agentgate tests."""

import logging

import pytest


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep user config, .env files and log settings out of tests."""
    for name in (
        "AGENTGATE_CONFIG_PATH",
        "AGENTGATE_GATEWAY_URL",
        "AGENTGATE_GATEWAY_PORT",
        "AGENTGATE_GATEWAY_TOKEN",
        "AGENTGATE_GATEWAY_PASSWORD",
        "AGENTGATE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AGENTGATE_ENV_PATH", str(tmp_path / "missing.env"))
    monkeypatch.setenv("HOME", str(tmp_path))
    yield
    root = logging.getLogger("agentgate")
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
    root.propagate = True


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts: unit=1s, integration=5s."""
    for item in items:
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(1))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))
