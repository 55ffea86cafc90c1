"""JSON log lines — base fields, extras, idempotent setup."""

import json
import logging
from uuid import UUID

from lanpapp.infrastructure.observability import JSONFormatter, setup_logging


def _record(msg: str = "vote cast", **extra) -> logging.LogRecord:
    record = logging.LogRecord("lanpapp.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_base_fields():
    line = json.loads(JSONFormatter().format(_record()))
    assert line["level"] == "INFO"
    assert line["logger"] == "lanpapp.test"
    assert line["msg"] == "vote cast"
    assert "ts" in line


def test_extras_become_top_level_keys():
    lanpa_id = UUID("00000000-0000-0000-0000-000000000001")
    line = json.loads(JSONFormatter().format(
        _record(lanpa_id=lanpa_id, attempt=2, nomination_id=None),
    ))
    assert line["lanpa_id"] == str(lanpa_id)
    assert line["attempt"] == 2
    assert "nomination_id" not in line


def test_setup_logging_twice_keeps_one_handler():
    setup_logging("DEBUG", "json")
    setup_logging("INFO", "text")
    root = logging.getLogger()
    ours = [h for h in root.handlers if h.get_name() == "lanpapp"]
    assert len(ours) == 1
    assert not isinstance(ours[0].formatter, JSONFormatter)
    assert root.level == logging.INFO
    root.removeHandler(ours[0])
