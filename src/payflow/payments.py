# src/payflow/payments.py
"""Demo payment handlers for the dispatcher. They only build a Receipt; nothing is charged."""
from __future__ import annotations

from typing import Any, Dict

from payflow.core import log
from payflow.core.contracts import Handler, Receipt

_l = log.get("payflow.payments")


def _require(ctx: Any, key: str) -> Any:
    # works for plain dicts and PaymentContext alike
    value = ctx.get(key) if hasattr(ctx, "get") else getattr(ctx, key, None)
    if value is None:
        raise KeyError(key)
    return value


def pay_credit_card(ctx: Any) -> Receipt:
    amount = float(_require(ctx, "amount"))
    name = _require(ctx, "name")
    account = str(_require(ctx, "account_number"))
    _l.info("credit card charge amount=%.2f card=***%s", amount, account[-4:])
    return Receipt(method="CreditCard", amount=amount, payer=name)


def pay_paypal(ctx: Any) -> Receipt:
    amount = float(_require(ctx, "amount"))
    email = _require(ctx, "email")
    _l.info("paypal charge amount=%.2f email=%s", amount, email)
    return Receipt(method="PayPal", amount=amount, payer=email)


DEFAULT_STRATEGIES: Dict[str, Handler] = {
    "CreditCard": pay_credit_card,
    "PayPal": pay_paypal,
}
