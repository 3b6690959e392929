# src/payflow/core/log.py
from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# process-wide: setup() runs once unless forced
_configured = False

_PLAIN_FMT = "[%(asctime)s] %(levelname)s %(name)s | %(message)s"

# extra= keys the dispatcher/hub attach to records; copied into JSON lines
CONTEXT_KEYS = ("strategy", "hub", "observer", "state")


def _env(key: str, default: str) -> str:
    # PAYFLOW_* wins over the generic name
    return os.getenv(f"PAYFLOW_{key}") or os.getenv(key) or default


class JsonHandler(logging.StreamHandler):
    """One JSON object per line on stdout."""
    def __init__(self):
        super().__init__(stream=sys.stdout)

    def _to_obj(self, record: logging.LogRecord) -> Dict[str, Any]:
        obj: Dict[str, Any] = {
            "ts": record.created,
            "lvl": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
            "where": f"{record.filename}:{record.lineno}",
        }
        for k in CONTEXT_KEYS:
            if hasattr(record, k):
                obj[k] = getattr(record, k)
        if record.exc_info:
            obj["exc"] = logging.Formatter().formatException(record.exc_info)
        return obj

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(json.dumps(self._to_obj(record), ensure_ascii=False, default=str) + "\n")
            self.flush()
        except Exception:  # pragma: no cover
            self.handleError(record)


def _resolve_level(level: str) -> int:
    py_level = logging.getLevelName(level.upper())
    return py_level if isinstance(py_level, int) else logging.INFO


def _make_handler(json_flag: bool) -> logging.Handler:
    if json_flag:
        return JsonHandler()
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=_PLAIN_FMT))
    return handler


def is_configured() -> bool:
    return _configured


def setup(level: Optional[str] = None, json_mode: Optional[bool] = None, *, force: bool = False) -> None:
    """Configure the root logger for payflow.

    Level and format come from the arguments, else PAYFLOW_LOG_LEVEL / LOG_LEVEL
    and PAYFLOW_LOG_JSON / LOG_JSON (a .env file is loaded first). Only the
    first call takes effect unless force=True.
    """
    global _configured
    if _configured and not force:
        return

    load_dotenv()
    py_level = _resolve_level(level or _env("LOG_LEVEL", "INFO"))
    json_flag = json_mode if json_mode is not None else _env("LOG_JSON", "0") == "1"

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(py_level)
    root.addHandler(_make_handler(json_flag))
    _configured = True


def get(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_level(level: str) -> None:
    logging.getLogger().setLevel(_resolve_level(level))
