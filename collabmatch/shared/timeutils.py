from datetime import datetime, timezone

utc_now = lambda: datetime.now(timezone.utc)  # noqa: E731
dt_to_ms = lambda dt: int(dt.timestamp() * 1000)  # noqa: E731


def ms_to_dt(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
