# src/payflow/core/metrics.py
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from statistics import mean
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple

LabelKey = Tuple[Tuple[str, str], ...]
MetricKey = Tuple[str, LabelKey]


def _labels_key(labels: Dict[str, Any] | None) -> LabelKey:
    if not labels:
        return tuple()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _pct(sorted_vals: List[float], q: float) -> float:
    if not sorted_vals:
        return 0.0
    idx = max(0, min(len(sorted_vals) - 1, int(round((len(sorted_vals) - 1) * q))))
    return sorted_vals[idx]


class _Scalar:
    """Counter / gauge cell: a locked float."""
    def __init__(self, name: str, labels: LabelKey):
        self.name = name
        self.labels = labels
        self._value = 0.0
        self._lock = threading.Lock()

    def add(self, n: float) -> None:
        with self._lock:
            self._value += n

    def set(self, v: float) -> None:
        with self._lock:
            self._value = float(v)

    def value(self) -> float:
        with self._lock:
            return self._value


class Histogram:
    def __init__(self, name: str, labels: LabelKey, maxlen: int = 2048):
        self.name = name
        self.labels = labels
        self._values: Deque[float] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def observe(self, v: float) -> None:
        with self._lock:
            self._values.append(float(v))

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            vals = sorted(self._values)
        if not vals:
            return {"count": 0, "min": 0.0, "max": 0.0, "mean": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
        return {
            "count": float(len(vals)),
            "min": vals[0],
            "max": vals[-1],
            "mean": mean(vals),
            "p50": _pct(vals, 0.50),
            "p90": _pct(vals, 0.90),
            "p99": _pct(vals, 0.99),
        }


class _Registry:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._counters: Dict[MetricKey, _Scalar] = {}
        self._gauges: Dict[MetricKey, _Scalar] = {}
        self._hists: Dict[MetricKey, Histogram] = {}

    def _get(self, table: Dict[MetricKey, Any], factory, name: str, labels: Dict[str, Any] | None):
        key = (name, _labels_key(labels))
        with self._lock:
            m = table.get(key)
            if m is None:
                m = factory(name, key[1])
                table[key] = m
            return m

    def counter(self, name: str, labels: Dict[str, Any] | None) -> _Scalar:
        return self._get(self._counters, _Scalar, name, labels)

    def gauge(self, name: str, labels: Dict[str, Any] | None) -> _Scalar:
        return self._get(self._gauges, _Scalar, name, labels)

    def hist(self, name: str, labels: Dict[str, Any] | None) -> Histogram:
        return self._get(self._hists, Histogram, name, labels)

    def items(self):
        with self._lock:
            return list(self._counters.values()), list(self._gauges.values()), list(self._hists.values())

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._hists.clear()


_REG = _Registry()


# ---------------- Public API ----------------

def inc(name: str, n: float = 1.0, **labels: Any) -> None:
    _REG.counter(name, labels).add(n)


def gauge_set(name: str, v: float, **labels: Any) -> None:
    _REG.gauge(name, labels).set(v)


def observe_hist(name: str, v: float, **labels: Any) -> None:
    _REG.hist(name, labels).observe(v)


def counter_value(name: str, **labels: Any) -> float:
    return _REG.counter(name, labels).value()


def gauge_value(name: str, **labels: Any) -> float:
    return _REG.gauge(name, labels).value()


def reset() -> None:
    """Drop every metric (tests)."""
    _REG.clear()


class Timer:
    """Context manager that records elapsed milliseconds into a histogram."""
    def __init__(self, hist_name: str, **labels: Any) -> None:
        self.hist_name = hist_name
        self.labels = labels
        self._t0 = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.elapsed_ms = (time.perf_counter() - self._t0) * 1000.0
        observe_hist(self.hist_name, self.elapsed_ms, **self.labels)
        return False


def snapshot_all() -> dict:
    counters, gauges, hists = _REG.items()
    return {
        "counters": [{"name": m.name, "labels": dict(m.labels), "value": m.value()} for m in counters],
        "gauges": [{"name": m.name, "labels": dict(m.labels), "value": m.value()} for m in gauges],
        "hists": [{"name": m.name, "labels": dict(m.labels), **m.snapshot()} for m in hists],
    }


def _format_lines(json_mode: bool) -> Iterable[Any]:
    snap = snapshot_all()
    if json_mode:
        for kind, rows in (("counter", snap["counters"]), ("gauge", snap["gauges"]), ("hist", snap["hists"])):
            for row in rows:
                yield {"type": kind, **row}
        return
    for row in snap["counters"]:
        yield f"[ctr] {row['name']} {row['labels']} value={row['value']:.0f}"
    for row in snap["gauges"]:
        yield f"[gauge] {row['name']} {row['labels']} value={row['value']:.3f}"
    for row in snap["hists"]:
        yield (
            f"[hist] {row['name']} {row['labels']} "
            f"n={int(row['count'])} min={row['min']:.3f} p50={row['p50']:.3f} "
            f"p90={row['p90']:.3f} p99={row['p99']:.3f} max={row['max']:.3f}"
        )


def force_emit(logger: Optional[logging.Logger] = None, json_mode: bool = False) -> None:
    """Log the current snapshot right now."""
    out = logger or logging.getLogger("metrics")
    for line in _format_lines(json_mode):
        out.info(line)


# ---------------- Exporter (log every N seconds) ----------------

class _Exporter(threading.Thread):
    def __init__(self, interval_sec: float, json_mode: bool, logger: Optional[logging.Logger]):
        super().__init__(name="metrics-exporter", daemon=True)
        self.interval = float(interval_sec)
        self.json_mode = bool(json_mode)
        self.log = logger or logging.getLogger("metrics")
        self._stop_evt = threading.Event()

    def run(self) -> None:
        while not self._stop_evt.wait(max(0.1, self.interval)):
            force_emit(self.log, self.json_mode)

    def stop(self, timeout: float = 1.0) -> None:
        self._stop_evt.set()
        self.join(timeout=timeout)


_EXPORTER: Optional[_Exporter] = None
_EXPORTER_LOCK = threading.Lock()


def start_exporter(interval_sec: float = 5.0, json_mode: bool = False, logger: Optional[logging.Logger] = None) -> None:
    global _EXPORTER
    with _EXPORTER_LOCK:
        if _EXPORTER is not None:
            return
        _EXPORTER = _Exporter(interval_sec, json_mode, logger)
        _EXPORTER.start()


def stop_exporter(timeout: float = 1.0) -> None:
    global _EXPORTER
    with _EXPORTER_LOCK:
        if _EXPORTER is not None:
            _EXPORTER.stop(timeout=timeout)
            _EXPORTER = None
