"""JSON-lines timing events (``render``, ``store_put``) on the ``perf`` logger."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path


PERF_LOGGER_NAME = "perf"

_logger = logging.getLogger(PERF_LOGGER_NAME)
_logger.setLevel(logging.INFO)
_logger.propagate = False
_logger.addHandler(logging.NullHandler())


def configure_perf_log(path: Path | None) -> None:
    """Send perf events to ``path``, or drop them when ``path`` is None."""
    for handler in list(_logger.handlers):
        _logger.removeHandler(handler)
        handler.close()
    if path is None:
        _logger.addHandler(logging.NullHandler())
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    _logger.addHandler(handler)


def log_perf(event: str, **fields: object) -> None:
    payload: dict[str, object] = {"event": event, "ts": time.time()}
    payload.update(fields)
    _logger.info(json.dumps(payload, ensure_ascii=False, separators=(",", ":")))
