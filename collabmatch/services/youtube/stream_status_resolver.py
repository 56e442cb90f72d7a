"""Stream status resolver.

Turns a YouTube video id into a normalized `StreamStatus`:

- Cached results younger than the caller's freshness window are returned as is,
  without an upstream call. This keeps the API quota bounded.
- Misses go upstream through a bounded retry with linear backoff.
- When every attempt fails, the last cached result (however old) is returned.
  Only when nothing was ever cached does the caller see `upstream error`.
- `not found` results are never cached so a fresh link can be retried at once.

Usage:
    resolver = StreamStatusResolver.from_config()
    status = await resolver.check_stream_status("dQw4w9WgXcQ", cache_ttl=60)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

from collabmatch.app_config import get_app_environ_config
from collabmatch.schemas import StreamPhase
from collabmatch.shared.ttl_cache import TTLCache
from collabmatch.services.youtube.youtube_client import (
    INFO_PARTS,
    STATUS_PARTS,
    UpstreamError,
    YouTubeClient,
)
from collabmatch.services.youtube.youtube_schemas import (
    LiveBroadcastContent,
    StreamInfo,
    StreamStatus,
    StreamStatusError,
    YouTubeVideo,
)


def classify_stream_status(status: StreamStatus | None) -> StreamPhase:
    """Map a resolver result to the phase used by the collab state machine."""
    if status is None or status.error == StreamStatusError.UPSTREAM_ERROR:
        return StreamPhase.NO_DATA
    if status.is_live:
        return StreamPhase.LIVE
    if status.is_waiting_room:
        return StreamPhase.WAITING
    return StreamPhase.ENDED


def _status_from_video(video: YouTubeVideo) -> StreamStatus:
    snippet = video.snippet
    stats = video.statistics
    details = video.live_streaming_details
    broadcast = snippet.live_broadcast_content

    fields = dict(
        title=snippet.title,
        thumbnail=snippet.thumbnails.best_url(),
        view_count=stats.view_count,
        like_count=stats.like_count,
        comment_count=stats.comment_count,
        scheduled_start_time=details.scheduled_start_time if details else None,
        actual_start_time=details.actual_start_time if details else None,
        actual_end_time=details.actual_end_time if details else None,
    )

    if broadcast not in (LiveBroadcastContent.LIVE.value, LiveBroadcastContent.UPCOMING.value):
        # Finished broadcasts land here too; keep their metrics for totals
        return StreamStatus(is_valid=False, error=StreamStatusError.NOT_LIVE_STREAM, **fields)

    return StreamStatus(
        is_valid=True,
        is_waiting_room=broadcast == LiveBroadcastContent.UPCOMING.value,
        is_live=broadcast == LiveBroadcastContent.LIVE.value,
        **fields,
    )


class StreamStatusResolver:
    """Caching, retrying resolver around `YouTubeClient`.

    One instance is built per process (API lifespan or worker lifespan) and
    owns its cache.
    """

    def __init__(
        self,
        client: YouTubeClient,
        cache: TTLCache[str, StreamStatus],
        *,
        retry_attempts: int = 3,
        retry_base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")

        self.client = client
        self.cache = cache
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self._sleep = sleep

    @classmethod
    def from_config(cls) -> StreamStatusResolver:
        cfg = get_app_environ_config()
        client = YouTubeClient(
            base_url=cfg.YOUTUBE_API_BASE_URL,
            api_key=cfg.YOUTUBE_API_KEY,
            timeout=cfg.YOUTUBE_HTTP_TIMEOUT_SECONDS,
        )
        cache: TTLCache[str, StreamStatus] = TTLCache(
            cfg.STREAM_STATUS_CACHE_TTL_SECONDS,
            max_entries=cfg.STREAM_STATUS_CACHE_MAX_ENTRIES,
        )
        logger.info(
            "StreamStatusResolver initialized (ttl={}s, max_entries={}, attempts={})",
            cfg.STREAM_STATUS_CACHE_TTL_SECONDS,
            cfg.STREAM_STATUS_CACHE_MAX_ENTRIES,
            cfg.STREAM_STATUS_RETRY_ATTEMPTS,
        )
        return cls(
            client,
            cache,
            retry_attempts=cfg.STREAM_STATUS_RETRY_ATTEMPTS,
            retry_base_delay=cfg.STREAM_STATUS_RETRY_BASE_DELAY_SECONDS,
        )

    async def _fetch_with_retry(self, video_id: str) -> YouTubeVideo | None:
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return await self.client.fetch_video(video_id, STATUS_PARTS)
            except UpstreamError as e:
                if attempt == self.retry_attempts:
                    raise
                delay = self.retry_base_delay * attempt
                logger.warning(
                    f"YouTube lookup for {video_id} failed "
                    f"(attempt {attempt}/{self.retry_attempts}), retrying in {delay}s: {e}"
                )
                await self._sleep(delay)
        return None

    async def check_stream_status(
        self,
        video_id: str,
        cache_ttl: float | None = None,
    ) -> StreamStatus:
        """Resolve the broadcast state of `video_id`.

        Args:
            video_id: YouTube video id
            cache_ttl: Freshness window in seconds; defaults to the cache TTL

        Returns:
            StreamStatus. Never raises for upstream failures.

        Raises:
            AppError: If the upstream client is not configured.
        """
        cached = self.cache.get(video_id, max_age=cache_ttl)
        if cached is not None:
            logger.debug(f"Stream status cache hit for {video_id}")
            return cached

        try:
            video = await self._fetch_with_retry(video_id)
        except UpstreamError as e:
            logger.error(f"YouTube lookup for {video_id} failed after {self.retry_attempts} attempts: {e}")
            stale = self.cache.get_stale(video_id)
            if stale is not None:
                logger.warning(
                    f"Returning stale stream status for {video_id} "
                    f"(age {self.cache.age(video_id):.0f}s) due to upstream error"
                )
                return stale
            return StreamStatus(is_valid=False, error=StreamStatusError.UPSTREAM_ERROR)

        if video is None:
            return StreamStatus(is_valid=False, error=StreamStatusError.NOT_FOUND)

        status = _status_from_video(video)
        self.cache.set(video_id, status)
        return status

    async def get_stream_info(self, video_id: str) -> StreamInfo | None:
        """Fresh display metadata for `video_id`; None on any failure."""
        try:
            video = await self.client.fetch_video(video_id, INFO_PARTS)
        except Exception as e:
            logger.warning(f"Error getting stream info for {video_id}: {e}")
            return None

        if video is None:
            return None

        snippet = video.snippet
        details = video.live_streaming_details
        return StreamInfo(
            title=snippet.title,
            thumbnail=snippet.thumbnails.best_url() or "",
            view_count=video.statistics.view_count,
            like_count=video.statistics.like_count,
            comment_count=video.statistics.comment_count,
            is_live=snippet.live_broadcast_content == LiveBroadcastContent.LIVE.value,
            scheduled_start_time=details.scheduled_start_time if details else None,
            actual_start_time=details.actual_start_time if details else None,
        )
