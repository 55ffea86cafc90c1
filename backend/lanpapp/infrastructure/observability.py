"""Structured Logging — one JSON object per log line.

Invariants:
    - Every line carries ts, level, logger and msg
    - Anything passed through `extra=` (lanpa_id, nomination_id, user_id,
      error_code, from_status, ...) is emitted as a top-level key
    - UUIDs, datetimes and enums are stringified, numbers and bools kept as-is
    - setup_logging is idempotent: calling it twice never duplicates output

Design Decisions:
    - Stdlib logging with a custom Formatter: services log with plain
      logger.info(..., extra={...}) and never import this module
    - Extras detected by diffing against the attributes every LogRecord has,
      so a new id field needs no change here
"""

import json
import logging
from datetime import datetime, timezone

_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__,
) | {"message", "asctime", "taskName"}

_HANDLER_NAME = "lanpapp"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_") or value is None:
                continue
            line[key] = value if isinstance(value, (bool, int, float)) else str(value)
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the root handler. fmt="json" in production, anything else is plain text."""
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        JSONFormatter() if fmt == "json"
        else logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s"),
    )
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # Engine echo is configured per engine; keep its logger at WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
