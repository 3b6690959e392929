import pytest

from payflow.core.dispatcher import StrategyDispatcher
from payflow.core.errors import ConfigurationError, UnknownStrategyError
from payflow.core.metrics import counter_value


def _recorder(tag, calls):
    def handler(ctx):
        calls.append((tag, ctx))
        return tag
    handler.__name__ = f"h_{tag}"
    return handler


def test_credit_card_then_paypal_scenario(calls):
    h1, h2 = _recorder("h1", calls), _recorder("h2", calls)
    d = StrategyDispatcher({"CreditCard": h1, "PayPal": h2}, "CreditCard")

    assert d.invoke({"amount": 10}) == "h1"
    d.set_strategy("PayPal")
    assert d.invoke({"amount": 5}) == "h2"

    assert calls == [("h1", {"amount": 10}), ("h2", {"amount": 5})]


def test_every_registered_name_routes_to_its_own_handler(calls):
    names = ["a", "b", "c", "d"]
    d = StrategyDispatcher({n: _recorder(n, calls) for n in names}, "a")
    for n in reversed(names):
        d.set_strategy(n)
        ctx = {"who": n}
        assert d.invoke(ctx) == n
        assert calls[-1] == (n, ctx)
    assert len(calls) == len(names)


def test_context_is_passed_through_untouched():
    seen = []
    ctx = object()
    d = StrategyDispatcher({"x": seen.append}, "x")
    d.invoke(ctx)
    assert seen[0] is ctx


def test_unknown_initial_strategy_is_a_configuration_error():
    with pytest.raises(ConfigurationError) as ei:
        StrategyDispatcher({"CreditCard": lambda c: None}, "Bitcoin")
    assert "Bitcoin" in str(ei.value)


def test_unknown_strategy_leaves_active_handler_alone(calls):
    d = StrategyDispatcher({"CreditCard": _recorder("h1", calls)}, "CreditCard")
    with pytest.raises(UnknownStrategyError) as ei:
        d.set_strategy("PayPal")
    assert ei.value.name == "PayPal"
    assert ei.value.available == ["CreditCard"]
    assert d.active == "CreditCard"
    assert d.invoke({}) == "h1"


def test_unknown_strategy_is_also_a_key_error():
    d = StrategyDispatcher({"a": print}, "a")
    with pytest.raises(KeyError):
        d.set_strategy("zzz")


def test_set_strategy_twice_is_same_as_once(calls):
    d = StrategyDispatcher({"a": _recorder("a", calls), "b": _recorder("b", calls)}, "a")
    d.set_strategy("b")
    d.set_strategy("b")
    assert d.active == "b"
    d.invoke(1)
    assert calls == [("b", 1)]


def test_handler_errors_propagate_unchanged():
    class Declined(Exception):
        pass

    def boom(ctx):
        raise Declined("card declined")

    d = StrategyDispatcher({"bad": boom}, "bad")
    with pytest.raises(Declined, match="card declined"):
        d.invoke({"amount": 1})
    assert counter_value("dispatcher_errors_total", strategy="bad") == 1
    assert counter_value("dispatcher_invoke_total", strategy="bad") == 1


def test_registry_is_copied_at_construction(calls):
    registry = {"a": _recorder("a", calls)}
    d = StrategyDispatcher(registry, "a")
    registry["b"] = _recorder("b", calls)
    assert "b" not in d
    with pytest.raises(UnknownStrategyError):
        d.set_strategy("b")


def test_register_adds_and_overrides(calls):
    d = StrategyDispatcher({"a": _recorder("old", calls)}, "a")
    d.register("b", _recorder("b", calls))
    assert d.names() == ["a", "b"]

    d.register("a", _recorder("new", calls))
    assert d.invoke(0) == "new"

    with pytest.raises(ConfigurationError):
        d.register("c", "not callable")


def test_invoke_counts_per_strategy():
    d = StrategyDispatcher({"a": lambda c: c, "b": lambda c: c}, "a")
    d.invoke(1)
    d.invoke(2)
    d.set_strategy("b")
    d.invoke(3)
    assert counter_value("dispatcher_invoke_total", strategy="a") == 2
    assert counter_value("dispatcher_invoke_total", strategy="b") == 1


def test_non_callable_registry_entry_fails_at_construction():
    with pytest.raises(ConfigurationError, match="not callable"):
        StrategyDispatcher({"a": "not callable", "b": print}, "b")


def test_errors_survive_copy_and_pickle():
    import copy
    import pickle

    err = UnknownStrategyError("Bitcoin", ["CreditCard", "PayPal"])
    for clone in (copy.copy(err), pickle.loads(pickle.dumps(err))):
        assert isinstance(clone, UnknownStrategyError)
        assert clone.name == "Bitcoin"
        assert clone.available == ["CreditCard", "PayPal"]
        assert str(clone) == str(err)
