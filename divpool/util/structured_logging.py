from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Dict

Json = Dict[str, Any]

_CONFIGURED = False


def _json_default(obj: Any) -> Any:
    if hasattr(obj, "value"):
        # Enum members log by value.
        return obj.value
    return str(obj)


def configure_logging(level: str | int | None = None) -> None:
    """Install a message-only stream handler on the ``divpool`` logger.

    Level precedence: explicit argument, then ``DIVPOOL_LOG_LEVEL``, then INFO.
    Calling this more than once only updates the level.
    """
    global _CONFIGURED
    if level is None:
        level = os.environ.get("DIVPOOL_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.strip().upper(), logging.INFO)

    root = logging.getLogger("divpool")
    root.setLevel(level)
    if _CONFIGURED:
        return

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.propagate = False
    _CONFIGURED = True


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a single JSONL log event.

    Keys are sorted so identical events produce identical lines.
    """
    if not logger.isEnabledFor(level):
        return
    payload: Json = {"event": str(event)}
    payload.update(fields)
    logger.log(level, json.dumps(payload, sort_keys=True, separators=(",", ":"), default=_json_default))
