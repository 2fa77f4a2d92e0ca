from __future__ import annotations

import json
import logging
import sys

import pytest

from openstack_inventory import dispatch
from openstack_inventory.logging import JsonFormatter, LogConfig, PlainFormatter, setup_logging
from openstack_inventory.openstack.clients import Subsystem


@pytest.fixture(autouse=True)
def _fresh_root_logger(monkeypatch):
    monkeypatch.delenv("OSP_INV_LOG_LEVEL", raising=False)
    monkeypatch.delenv("OSP_INV_JSON_LOGS", raising=False)
    monkeypatch.setattr(setup_logging, "_configured", False, raising=False)
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def _record(**extra) -> logging.LogRecord:
    fields = {"name": "openstack_inventory.dispatch", "levelname": "INFO", "levelno": logging.INFO}
    fields.update(extra)
    return logging.makeLogRecord(fields)


def test_setup_logging_configures_root_once(_fresh_root_logger) -> None:
    setup_logging(LogConfig(level="DEBUG"))
    handler = _fresh_root_logger.handlers[0]
    assert _fresh_root_logger.level == logging.DEBUG
    assert isinstance(handler.formatter, PlainFormatter)

    setup_logging(LogConfig(level="ERROR", json_logs=True))
    assert _fresh_root_logger.handlers == [handler]
    assert _fresh_root_logger.level == logging.DEBUG


def test_env_selects_level_and_json(monkeypatch, _fresh_root_logger) -> None:
    monkeypatch.setenv("OSP_INV_LOG_LEVEL", "warning")
    monkeypatch.setenv("OSP_INV_JSON_LOGS", "true")
    setup_logging()
    assert _fresh_root_logger.level == logging.WARNING
    assert isinstance(_fresh_root_logger.handlers[0].formatter, JsonFormatter)
    assert logging.getLogger("keystoneauth").level == logging.WARNING


def test_unknown_level_defaults_to_info(monkeypatch, _fresh_root_logger) -> None:
    monkeypatch.setenv("OSP_INV_LOG_LEVEL", "chatty")
    setup_logging()
    assert _fresh_root_logger.level == logging.INFO


def test_json_logs_carry_dispatch_extras(capsys, make_session) -> None:
    session = make_session({Subsystem.COMPUTE: {"/servers/detail": {"servers": [{"id": "vm-1", "name": "web"}]}}})
    setup_logging(LogConfig(level="DEBUG", json_logs=True))

    dispatch.list_resources(session, "VM")

    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]
    ours = [line for line in lines if line["name"] == "openstack_inventory.dispatch"]
    assert [line["phase"] for line in ours] == ["start", "done"]
    done = ours[-1]
    assert done["step"] == "list"
    assert done["kind"] == "VM"
    assert done["level"] == "INFO"
    assert done["message"] == "Listed 1 VM resources"
    assert isinstance(done["duration_ms"], int)
    assert "duration_ms" not in ours[0]


def test_json_formatter_skips_unserialisable_extras() -> None:
    payload = json.loads(JsonFormatter().format(_record(msg="hello", step="get", session=object())))
    assert payload["message"] == "hello"
    assert payload["step"] == "get"
    assert "session" not in payload
    assert "msg" not in payload


def test_plain_formatter_labels_step_with_kind() -> None:
    line = PlainFormatter().format(
        _record(msg="Listed %d %s resources", args=(2, "VM"), step="list", phase="done", kind="VM", duration_ms=7)
    )
    assert line.endswith("INFO openstack_inventory.dispatch: [list/VM:done] Listed 2 VM resources (duration_ms=7)")


def test_plain_formatter_without_step_leaves_message_alone() -> None:
    line = PlainFormatter().format(_record(msg="connected"))
    assert line.endswith("INFO openstack_inventory.dispatch: connected")


def test_plain_formatter_appends_traceback() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record(msg="failed", step="get", exc_info=sys.exc_info())
    line = PlainFormatter().format(record)
    assert "[get:unknown] failed" in line
    assert "RuntimeError: boom" in line
