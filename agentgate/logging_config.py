"""agentgate logging configuration.

Log records go to stderr so that command output on stdout stays parseable
(`agentgate sessions send --json | jq`). The level comes from
`AGENTGATE_LOG_LEVEL` (default: WARNING) unless overridden by the caller.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_LOG_LEVEL = "WARNING"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure agentgate logging.

    Args:
        level: Optional override for `AGENTGATE_LOG_LEVEL`.
    """
    if level:
        os.environ["AGENTGATE_LOG_LEVEL"] = level

    level_name = os.environ.get("AGENTGATE_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    resolved = logging.getLevelName(level_name)
    if not isinstance(resolved, int):
        resolved = logging.WARNING

    root = logging.getLogger("agentgate")
    root.setLevel(resolved)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.propagate = False
