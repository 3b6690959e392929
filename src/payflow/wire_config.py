# src/payflow/wire_config.py
from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

from payflow.core import log
from payflow.core.dispatcher import StrategyDispatcher
from payflow.core.errors import ConfigurationError
from payflow.core.hub import NotificationHub
from payflow.payments import DEFAULT_STRATEGIES

_l = log.get("payflow.wire")


def resolve(ref: str) -> Any:
    """Import 'package.module:attr' and return the attribute."""
    module, sep, attr = str(ref).partition(":")
    if not sep or not module or not attr:
        raise ConfigurationError(f"reference must look like 'module:attr', got {ref!r}")
    try:
        mod = importlib.import_module(module)
    except ImportError as e:
        raise ConfigurationError(f"cannot import {module!r} for {ref!r}") from e
    try:
        return getattr(mod, attr)
    except AttributeError as e:
        raise ConfigurationError(f"{module!r} has no attribute {attr!r}") from e


def build_from_dict(data: Dict[str, Any]) -> Tuple[StrategyDispatcher, NotificationHub]:
    if not isinstance(data, dict) or not isinstance(data.get("dispatcher"), dict):
        raise ConfigurationError("config needs a 'dispatcher' section")

    disp_cfg = data["dispatcher"]
    refs = disp_cfg.get("strategies")
    if refs and not isinstance(refs, dict):
        raise ConfigurationError("dispatcher.strategies must map names to 'module:attr' refs")
    if refs:
        registry = {str(k): resolve(v) for k, v in refs.items()}
    else:
        registry = dict(DEFAULT_STRATEGIES)
    initial = disp_cfg.get("initial")
    if not initial:
        raise ConfigurationError("dispatcher.initial is required")
    dispatcher = StrategyDispatcher(registry, str(initial))

    hub_cfg = data.get("hub") or {}
    if not isinstance(hub_cfg, dict):
        raise ConfigurationError("hub section must be a mapping")
    subs = hub_cfg.get("subscribers") or []
    if not isinstance(subs, list):
        raise ConfigurationError("hub.subscribers must be a list of 'module:attr' refs")
    hub = NotificationHub(name=str(hub_cfg.get("name", "payflow.hub")))
    for ref in subs:
        try:
            hub.subscribe(resolve(ref))
        except TypeError as e:
            raise ConfigurationError(f"subscriber {ref!r}: {e}") from e

    _l.info("wired dispatcher=%s hub=%s subscribers=%d", dispatcher.names(), hub.name, len(hub))
    return dispatcher, hub


def build_from_yaml(yaml_path: str | Path) -> Tuple[StrategyDispatcher, NotificationHub]:
    """Read a payflow YAML file and assemble the dispatcher and hub it describes."""
    data = yaml.safe_load(Path(yaml_path).read_text(encoding="utf-8"))
    return build_from_dict(data or {})
