from __future__ import annotations

import json
import logging
import os
import sys

LOG_LEVEL_ENV = "BASKETSWAP_LOG_LEVEL"


class EventFormatter(logging.Formatter):
    """Append the structured ``details`` payload of an event to its message."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        details = getattr(record, "details", None)
        if details:
            line = f"{line} {json.dumps(details, default=str, sort_keys=True)}"
        return line


def setup_logging(level: str | int | None = None) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(EventFormatter("%(asctime)s %(levelname)s %(name)s :: %(message)s"))
    root = logging.getLogger()
    root.handlers = [handler]
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV, "INFO").strip().upper() or "INFO"
    root.setLevel(level)
