# src/payflow/core/contracts.py
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Optional

__all__ = [
    "Handler",
    "Observer",
    "PaymentContext",
    "Receipt",
    "Item",
]

# handler(context) -> result; observers are fn(state) or objects with .update(state)
Handler = Callable[[Any], Any]
Observer = Any


@dataclass(slots=True)
class PaymentContext:
    """Open payment request record; handlers read only the fields they need."""
    amount: Optional[float] = None
    name: Optional[str] = None
    account_number: Optional[str] = None
    email: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        if key in PaymentContext.__dataclass_fields__ and key != "extra":
            v = getattr(self, key)
            return default if v is None else v
        return self.extra.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        extra = d.pop("extra")
        out = {k: v for k, v in d.items() if v is not None}
        out.update(extra)
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PaymentContext":
        known = {k: d[k] for k in ("amount", "name", "account_number", "email") if k in d}
        extra = {k: v for k, v in d.items() if k not in known}
        return cls(**known, extra=extra)


@dataclass(slots=True, frozen=True)
class Receipt:
    method: str
    amount: float
    payer: str
    reference: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class Item:
    sku: str
    name: str
    category: str
    price: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Item":
        return cls(**d)
