from __future__ import annotations

import json
import logging

import pytest

from scriptrun.logging_utils import JsonFormatter, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_handlers():
    root = logging.getLogger()
    saved, level = root.handlers[:], root.level
    yield
    for h in root.handlers:
        if h not in saved:
            h.close()
    root.handlers[:] = saved
    root.setLevel(level)


def test_json_formatter_payload():
    record = logging.LogRecord("scriptrun.lifecycle", logging.WARNING, __file__, 1, "Received %s", ("SIGINT",), None)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["name"] == "scriptrun.lifecycle"
    assert payload["msg"] == "Received SIGINT"
    assert "ts" in payload


def test_json_formatter_has_fixed_keys():
    record = logging.LogRecord("scriptrun", logging.INFO, __file__, 1, "hi", (), None)
    record.extra = {"msg": "overridden", "script": "build"}
    payload = json.loads(JsonFormatter().format(record))
    assert sorted(payload) == ["level", "msg", "name", "ts"]
    assert payload["msg"] == "hi"


def test_setup_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "scriptrun.log"
    setup_logging("ERROR", json_logs=True, log_file=str(log_file))

    logging.getLogger("scriptrun.test").debug("hello file")
    for h in logging.getLogger().handlers:
        h.flush()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["msg"] == "hello file"


def test_console_level_filters(capsys):
    setup_logging("ERROR")
    logging.getLogger("scriptrun.test").warning("quiet")
    logging.getLogger("scriptrun.test").error("loud")
    err = capsys.readouterr().err
    assert "loud" in err
    assert "quiet" not in err
