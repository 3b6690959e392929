# src/payflow/core/hub.py
from __future__ import annotations

import time
from collections.abc import Mapping, Set
from typing import Any, List, Optional, Tuple

from payflow.core import log
from payflow.core.contracts import Observer
from payflow.core.errors import PublishError
from payflow.core.metrics import gauge_set, inc, observe_hist


def _deliver(observer: Observer, state: Any) -> None:
    update = getattr(observer, "update", None)
    if callable(update):
        update(state)
    else:
        observer(state)


def _label(observer: Observer) -> str:
    return getattr(observer, "__name__", None) or type(observer).__name__


class NotificationHub:
    """Synchronous one-to-many fan-out of subject state changes.

    Subscribers are called in subscription order. A failing subscriber does
    not stop delivery to the rest; failures are raised together afterwards
    as PublishError.
    """

    def __init__(self, name: str = "payflow.hub"):
        self.name = name
        self.l = log.get(name)
        self._subs: List[Observer] = []
        self._state: Optional[Any] = None

    @property
    def state(self) -> Optional[Any]:
        """Last published state (None before the first publish)."""
        return self._state

    def subscribers(self) -> List[Observer]:
        return list(self._subs)

    def __len__(self) -> int:
        return len(self._subs)

    def subscribe(self, observer: Observer) -> None:
        # dicts and sets have .update() but are not observers
        if isinstance(observer, (Mapping, Set)) or not (callable(observer) or callable(getattr(observer, "update", None))):
            raise TypeError(f"observer must be callable or define update(): {observer!r}")
        # duplicates allowed: each subscription gets its own delivery
        self._subs.append(observer)
        self.l.info("subscribed hub=%s fn=%s", self.name, _label(observer))
        gauge_set("hub_subscribers", float(len(self._subs)), hub=self.name)

    def unsubscribe(self, observer: Observer) -> bool:
        try:
            self._subs.remove(observer)
        except ValueError:
            return False
        self.l.info("unsubscribed hub=%s fn=%s", self.name, _label(observer))
        gauge_set("hub_subscribers", float(len(self._subs)), hub=self.name)
        return True

    def publish(self, new_state: Any) -> None:
        self._state = new_state
        inc("hub_publish_total", 1, hub=self.name)

        failures: List[Tuple[Observer, BaseException]] = []
        for observer in list(self._subs):
            t0 = time.perf_counter()
            try:
                _deliver(observer, new_state)
            except Exception as e:
                failures.append((observer, e))
                inc("hub_deliver_errors_total", 1, hub=self.name)
                self.l.error("deliver error hub=%s fn=%s err=%s", self.name, _label(observer), e, exc_info=True,
                             extra={"hub": self.name, "observer": _label(observer), "state": new_state})
                continue
            observe_hist("hub_delivery_latency_ms", (time.perf_counter() - t0) * 1000.0, hub=self.name)
            inc("hub_deliver_total", 1, hub=self.name)

        if failures:
            raise PublishError(new_state, failures)
