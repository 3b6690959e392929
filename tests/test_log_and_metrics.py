import json
import logging
import os
import time

import pytest

from payflow.core import log
from payflow.core.metrics import Timer, force_emit, observe_hist, snapshot_all


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_runs_once_unless_forced(restore_root_logging):
    assert log.is_configured()
    root = logging.getLogger()
    before = list(root.handlers)
    log.setup("DEBUG")  # no-op: already configured by conftest
    assert root.handlers == before

    log.setup("ERROR", json_mode=False, force=True)
    assert root.level == logging.ERROR
    assert len(root.handlers) == 1


def test_json_handler_writes_one_object_per_line(capsys, restore_root_logging):
    log.setup("INFO", json_mode=True, force=True)
    log.get("payflow.test").info("paid amount=%d", 10)

    lines = [json.loads(x) for x in capsys.readouterr().out.strip().splitlines()]
    # the background exporter may interleave its own lines
    obj = next(o for o in lines if o["name"] == "payflow.test")
    assert obj["msg"] == "paid amount=10"
    assert obj["lvl"] == "INFO"


def test_set_level_falls_back_to_info(restore_root_logging):
    log.set_level("not-a-level")
    assert logging.getLogger().level == logging.INFO


def test_timer_records_histogram():
    with Timer("unit_ms", stage="t"):
        pass
    hists = [h for h in snapshot_all()["hists"] if h["name"] == "unit_ms"]
    assert hists and hists[0]["count"] == 1
    assert hists[0]["labels"] == {"stage": "t"}


def test_force_emit_logs_snapshot(caplog):
    caplog.set_level(logging.INFO, logger="metrics")
    observe_hist("emit_ms", 3.0, hub="x")
    force_emit(logging.getLogger("metrics"))
    assert any("emit_ms" in r.getMessage() for r in caplog.records)


@pytest.mark.smoke
def test_metrics_exporter_emits_logs(caplog):
    """The session exporter (interval from conftest) should log at least one snapshot."""
    caplog.set_level(logging.INFO, logger="metrics")
    observe_hist("test_latency_ms", 12.3, state="SMOKE")

    time.sleep(float(os.getenv("METRICS_WAIT_SMOKE", "1.8")))

    records = [r for r in caplog.records if r.name == "metrics"]
    assert len(records) > 0, "expected at least one metrics log line"
    text = " ".join(r.getMessage() for r in records)
    assert "test_latency_ms" in text


def test_json_lines_carry_hub_context(capsys, restore_root_logging):
    from payflow.core.errors import PublishError
    from payflow.core.hub import NotificationHub

    log.setup("INFO", json_mode=True, force=True)

    def offline(state):
        raise ConnectionError("catalog unreachable")

    hub = NotificationHub(name="category")
    hub.subscribe(offline)
    with pytest.raises(PublishError):
        hub.publish("tools")

    lines = [json.loads(x) for x in capsys.readouterr().out.strip().splitlines()]
    err = next(o for o in lines if o["lvl"] == "ERROR" and o["name"] == "category")
    assert (err["hub"], err["observer"], err["state"]) == ("category", "offline", "tools")
    assert "ConnectionError" in err["exc"]
