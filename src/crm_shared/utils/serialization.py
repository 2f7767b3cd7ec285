"""
Safe JSON helpers with support for datetime, UUID, Decimal.

Every value written to the cache goes through dumps(), scalars included, so a
stored "true" and a stored True stay distinguishable on read.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


class SafeEncoder(json.JSONEncoder):
    def default(self, o: Any):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, Decimal):
            return float(o)
        return super().default(o)


def dumps(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"), cls=SafeEncoder)


def loads(s: str) -> Any:
    return json.loads(s)


def loads_or_raw(s: str) -> Any:
    """Decode JSON text; values that are not JSON come back as the raw string."""
    try:
        return json.loads(s)
    except (json.JSONDecodeError, TypeError):
        return s
