"""Shared utilities for schema validation."""

from datetime import datetime, timezone
from typing import Any


def parse_mongo_datetime(v: Any) -> Any:
    """Accept MongoDB Extended JSON dates in addition to native datetimes.

    Documents seeded with mongoimport carry dates as `{'$date': '2024-11-01T08:00:00Z'}`
    (relaxed form) or `{'$date': {'$numberLong': '1730448000000'}}` (canonical form).
    Naive datetimes, as the driver returns them, are UTC and get the tzinfo attached.
    """
    if isinstance(v, datetime):
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)
    if isinstance(v, dict) and "$date" in v:
        raw = v["$date"]
        if isinstance(raw, dict) and "$numberLong" in raw:
            return datetime.fromtimestamp(int(raw["$numberLong"]) / 1000, timezone.utc)
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    return v
