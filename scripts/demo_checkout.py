import argparse
import logging
import os

from payflow.adapters.catalog import CategoryFeed, StaticCatalog
from payflow.core import log
from payflow.core.contracts import Item, PaymentContext
from payflow.core.errors import PublishError
from payflow.core.metrics import force_emit, start_exporter, stop_exporter
from payflow.wire_config import build_from_dict, build_from_yaml

DEMO_ITEMS = [
    Item("T-100", "Hammer", "tools", 12.5),
    Item("T-101", "Wrench", "tools", 9.0),
    Item("G-200", "Tomato seeds", "garden", 2.2),
    Item("K-300", "Kettle", "kitchen", 31.0),
]


def main():
    ap = argparse.ArgumentParser(description="Pay with every strategy and publish a few category changes.")
    ap.add_argument("--config", default=None, help="payflow YAML file (defaults to the built-in strategies)")
    ap.add_argument("--amount", type=float, default=10.0)
    args = ap.parse_args()

    log.setup()
    lg = log.get("demo.checkout")
    start_exporter(interval_sec=float(os.getenv("METRICS_INTERVAL", "5")),
                   json_mode=(os.getenv("LOG_JSON", "0") == "1"))

    if args.config:
        dispatcher, hub = build_from_yaml(args.config)
    else:
        dispatcher, hub = build_from_dict({"dispatcher": {"initial": "CreditCard"}})

    ctx = PaymentContext(amount=args.amount, name="Ada Lovelace",
                         account_number="4111111111111111", email="ada@example.com")
    for name in dispatcher.names():
        dispatcher.set_strategy(name)
        receipt = dispatcher.invoke(ctx)
        lg.info("paid via %s -> %s", name, receipt.to_dict())

    feed = CategoryFeed(StaticCatalog(DEMO_ITEMS))
    hub.subscribe(feed)
    for category in ("tools", "garden", "kitchen"):
        try:
            hub.publish(category)
        except PublishError as e:
            lg.warning("publish incomplete: %s", e)
        lg.info("feed category=%s items=%s", feed.category, [it.name for it in feed.items])

    force_emit(logging.getLogger("metrics"))
    stop_exporter()


if __name__ == "__main__":
    main()
