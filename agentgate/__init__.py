"""agentgate: operator CLI for agent gateway sessions."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("agentgate")
except PackageNotFoundError:
    # Running from a source tree that was never installed.
    __version__ = "0.0.0"

__all__ = ["__version__"]
