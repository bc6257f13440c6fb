from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime, time
from enum import Enum
from typing import Any


def to_jsonable(value: Any) -> Any:
    """Turn models (frozen dataclasses) into plain JSON-friendly values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    return value


def dumps(value: Any) -> str:
    """Encode nested values for JSON columns."""
    return json.dumps(to_jsonable(value), ensure_ascii=False)


def loads(value: Any, default: Any = None) -> Any:
    if value is None or value == "":
        return default
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    return json.loads(value)


def diff_fields(before: dict, after: dict) -> list[dict]:
    """List of ``{field, old, new}`` for keys whose value changed."""
    changes = []
    for key, new in after.items():
        old = before.get(key)
        if to_jsonable(old) != to_jsonable(new):
            changes.append({"field": key, "old": to_jsonable(old), "new": to_jsonable(new)})
    return changes
