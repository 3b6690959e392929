# src/payflow/core/errors.py
from __future__ import annotations

from typing import Any, List, Tuple


class PayflowError(Exception):
    """Base class for errors raised by payflow itself."""


class ConfigurationError(PayflowError):
    """Invalid wiring: bad initial strategy, unresolvable config reference."""


class UnknownStrategyError(PayflowError, KeyError):
    def __init__(self, name: str, available: List[str]):
        self.name = name
        self.available = list(available)
        super().__init__(f"unknown strategy {name!r}; available: {self.available}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])

    def __reduce__(self):
        return (type(self), (self.name, self.available))


class PublishError(PayflowError):
    """One or more subscribers failed while a state was being published.

    Every subscriber has already been called by the time this is raised;
    ``failures`` holds ``(observer, exception)`` pairs in delivery order.
    """

    def __init__(self, state: Any, failures: List[Tuple[Any, BaseException]]):
        self.state = state
        self.failures = list(failures)
        names = ", ".join(f"{_name_of(o)}: {e!r}" for o, e in self.failures)
        super().__init__(f"{len(self.failures)} subscriber(s) failed for state={state!r} [{names}]")

    def __reduce__(self):
        return (type(self), (self.state, self.failures))


def _name_of(obj: Any) -> str:
    return getattr(obj, "__name__", None) or type(obj).__name__
