import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
import json
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

from payroll_ledger.core.config import settings

def mkdir_safe(path: str):
    Path(path).mkdir(parents=True, exist_ok=True)

def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError(f"not a numeric amount: {value!r}")
    # str() keeps 0.015 as 0.015 instead of its binary expansion
    return Decimal(str(value))

def round_vnd(value: Any) -> int:
    """Round an amount to whole VND, halves away from zero."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def setup_logging(store_id: str = "system", *, log_level: str = None):
    logger_name = f"{settings.APP_NAME}.{store_id}"
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger
    level = log_level or settings.LOG_LEVEL
    logger.setLevel(getattr(logging, level))
    mkdir_safe(settings.AUDIT_LOG_PATH)
    logfile = Path(settings.AUDIT_LOG_PATH) / f"{store_id}.log"
    handler = RotatingFileHandler(str(logfile), maxBytes=10_000_000, backupCount=5)
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    if os.getenv("DEV", "").lower() in ("1","true","yes"):
        ch = logging.StreamHandler()
        ch.setFormatter(formatter)
        logger.addHandler(ch)
    logger.propagate = False
    return logger

def audit_log(store_id: str, actor: str, action: str, obj_type: str, obj_id: str, diff: Dict = None):
    mkdir_safe(settings.AUDIT_LOG_PATH)
    path = Path(settings.AUDIT_LOG_PATH) / f"{store_id}_audit.jsonl"
    entry = {
        "ts": int(time.time()),
        "actor": actor,
        "action": action,
        "object_type": obj_type,
        "object_id": obj_id,
        "diff": diff or {}
    }
    with open(path, "a", encoding="utf-8") as f:
        f.write(json.dumps(entry, default=str) + "\n")
    return True
