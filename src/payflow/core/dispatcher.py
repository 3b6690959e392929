# src/payflow/core/dispatcher.py
from __future__ import annotations

from typing import Any, Dict, List, Mapping

from payflow.core import log
from payflow.core.contracts import Handler
from payflow.core.errors import ConfigurationError, UnknownStrategyError
from payflow.core.metrics import Timer, inc


def _checked(name: str, handler: Handler) -> Handler:
    if not callable(handler):
        raise ConfigurationError(f"handler for {name!r} is not callable: {handler!r}")
    return handler


class StrategyDispatcher:
    """Route calls to one of several named handlers; the active one can be swapped at runtime.

    The registry is copied at construction. Not thread-safe: last set_strategy() wins.
    """

    def __init__(self, registry: Mapping[str, Handler], initial: str, *, name: str = "payflow.dispatcher"):
        self.name = name
        self.l = log.get(name)
        self._routes: Dict[str, Handler] = {}
        for key, handler in registry.items():
            self._routes[key] = _checked(key, handler)
        if initial not in self._routes:
            raise ConfigurationError(
                f"initial strategy {initial!r} is not registered; available: {self.names()}"
            )
        self._active = initial
        self.l.info("dispatcher ready active=%s strategies=%s", initial, self.names())

    @property
    def active(self) -> str:
        return self._active

    def names(self) -> List[str]:
        return sorted(self._routes)

    def __contains__(self, name: object) -> bool:
        return name in self._routes

    def register(self, name: str, handler: Handler) -> None:
        handler = _checked(name, handler)
        if name in self._routes:
            self.l.warning("overriding strategy %s", name)
        self._routes[name] = handler
        self.l.info("registered strategy=%s fn=%s", name, getattr(handler, "__name__", str(handler)))

    def set_strategy(self, name: str) -> None:
        if name not in self._routes:
            raise UnknownStrategyError(name, self.names())
        if name != self._active:
            self.l.info("strategy switch %s -> %s", self._active, name)
        self._active = name
        inc("dispatcher_switch_total", 1, strategy=name)

    def invoke(self, context: Any) -> Any:
        name = self._active
        handler = self._routes[name]
        inc("dispatcher_invoke_total", 1, strategy=name)
        try:
            with Timer("dispatcher_invoke_ms", strategy=name):
                return handler(context)
        except Exception as e:
            inc("dispatcher_errors_total", 1, strategy=name)
            self.l.error("handler error strategy=%s err=%s", name, e, exc_info=True, extra={"strategy": name})
            raise
