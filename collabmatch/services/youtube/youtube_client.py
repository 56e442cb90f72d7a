import httpx
from loguru import logger
from pydantic import ValidationError

from collabmatch.services.youtube.youtube_schemas import VideoListResponse, YouTubeVideo
from collabmatch.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

STATUS_PARTS = "snippet,status,statistics,liveStreamingDetails"
INFO_PARTS = "snippet,statistics,liveStreamingDetails"


class UpstreamError(Exception):
    """Transient failure talking to the YouTube Data API."""


class YouTubeClient:
    """Thin async client for the YouTube Data API `videos.list` endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        *,
        timeout: float = 10,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._http_client = http_client

    async def _get(self, url: str, params: dict[str, str]) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.get(url, params=params, timeout=self.timeout)

        async with httpx.AsyncClient() as client:
            return await client.get(url, params=params, timeout=self.timeout)

    async def fetch_video(self, video_id: str, parts: str = STATUS_PARTS) -> YouTubeVideo | None:
        """Fetch broadcast metadata for one video.

        Returns:
            The video, or None if the API has no record for the id.

        Raises:
            AppError: If no API key is configured.
            UpstreamError: On network errors, error responses or unparsable bodies.
        """
        if not self.api_key:
            logger.error("YOUTUBE_API_KEY not configured")
            raise AppError(
                errcode=AppErrorCode.E_UPSTREAM_NOT_CONFIGURED,
                errmesg="Video provider API key must be configured. Set it in env.local or environment variables.",
                status_code=HttpStatusCode.SERVICE_UNAVAILABLE,
            )

        url = f"{self.base_url}/videos"
        params = {"part": parts, "id": video_id, "key": self.api_key}

        try:
            response = await self._get(url, params)
        except httpx.HTTPError as e:
            raise UpstreamError(f"YouTube request failed for {video_id}: {e!r}") from e

        if response.status_code >= 400:
            # Never log the request URL, it carries the API key
            raise UpstreamError(
                f"YouTube returned HTTP {response.status_code} for {video_id}: {response.text[:200]}"
            )

        try:
            data = VideoListResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise UpstreamError(f"Invalid YouTube response for {video_id}: {e}") from e

        if not data.items:
            logger.debug(f"YouTube has no record for video {video_id}")
            return None

        return data.items[0]
