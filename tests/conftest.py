# tests/conftest.py
import os
import logging
import pytest

from payflow.core import log
from payflow.core import metrics
from payflow.core.metrics import start_exporter, stop_exporter


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_logging_and_metrics():
    # reads LOG_LEVEL / LOG_JSON / .env if available
    log.setup()

    interval = float(os.getenv("METRICS_INTERVAL_TEST", "1.0"))
    json_mode = (os.getenv("LOG_JSON", "0") == "1")
    start_exporter(interval_sec=interval, json_mode=json_mode,
                   logger=logging.getLogger("metrics"))
    yield
    stop_exporter()


@pytest.fixture(autouse=True)
def _fresh_metrics():
    metrics.reset()
    yield


@pytest.fixture
def calls():
    """Shared call log for recording handler / observer invocations."""
    return []
