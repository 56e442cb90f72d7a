from pydantic import BaseModel

from collabmatch.shared.config import config


class AppEnvironConfig(BaseModel):
    DEBUG: bool = (config.get("DEBUG") or "false").strip().lower() == "true"

    API_HOST: str = config.get("API_HOST", "0.0.0.0").strip()  # type: ignore
    API_PORT: int = int((config.get("API_PORT") or "").strip() or 8000)
    API_WORKERS: int = int((config.get("API_WORKERS") or "").strip() or 1)

    # Rate limits (slowapi notation)
    GLOBAL_API_RATE_LIMIT: str = config.get("GLOBAL_API_RATE_LIMIT", "1000/minute").strip()  # type: ignore
    CREATE_COLLAB_RATE_LIMIT: str = config.get("CREATE_COLLAB_RATE_LIMIT", "5/15minutes").strip()  # type: ignore
    MATCH_COLLAB_RATE_LIMIT: str = config.get("MATCH_COLLAB_RATE_LIMIT", "10/15minutes").strip()  # type: ignore
    STREAM_INFO_RATE_LIMIT: str = config.get("STREAM_INFO_RATE_LIMIT", "30/minute").strip()  # type: ignore

    # MongoDB label used for the collab collection
    COLLAB_MONGO_LABEL: str = config.get("COLLAB_MONGO_LABEL", "collab_primary").strip()  # type: ignore

    # YouTube Data API
    YOUTUBE_API_KEY: str | None = (config.get("YOUTUBE_API_KEY") or "").strip() or None
    YOUTUBE_API_BASE_URL: str = config.get(
        "YOUTUBE_API_BASE_URL", "https://www.googleapis.com/youtube/v3"
    ).strip()  # type: ignore
    YOUTUBE_HTTP_TIMEOUT_SECONDS: float = float(
        (config.get("YOUTUBE_HTTP_TIMEOUT_SECONDS") or "").strip() or 10
    )

    # Stream status resolver
    STREAM_STATUS_CACHE_TTL_SECONDS: float = float(
        (config.get("STREAM_STATUS_CACHE_TTL_SECONDS") or "").strip() or 300
    )
    STREAM_STATUS_CACHE_MAX_ENTRIES: int = int(
        (config.get("STREAM_STATUS_CACHE_MAX_ENTRIES") or "").strip() or 10000
    )
    STREAM_STATUS_RETRY_ATTEMPTS: int = int(
        (config.get("STREAM_STATUS_RETRY_ATTEMPTS") or "").strip() or 3
    )
    STREAM_STATUS_RETRY_BASE_DELAY_SECONDS: float = float(
        (config.get("STREAM_STATUS_RETRY_BASE_DELAY_SECONDS") or "").strip() or 1
    )

    # Freshness windows used by the status aggregator
    EVENT_CACHE_TTL_SECONDS: float = float(
        (config.get("EVENT_CACHE_TTL_SECONDS") or "").strip() or 300
    )
    SWEEP_CACHE_TTL_SECONDS: float = float(
        (config.get("SWEEP_CACHE_TTL_SECONDS") or "").strip() or 900
    )

    # Periodic sweep worker
    REDIS_QUEUE_URL: str = config.get("REDIS_QUEUE_URL", "redis://localhost:6379/0").strip()  # type: ignore
    SWEEP_CRON: str = config.get("SWEEP_CRON", "*/5 * * * *").strip()  # type: ignore
    SWEEP_BATCH_SIZE: int = int((config.get("SWEEP_BATCH_SIZE") or "").strip() or 200)

    # Collab configuration
    MAX_PARTNERS_LIMIT: int = int((config.get("MAX_PARTNERS_LIMIT") or "").strip() or 2)


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
