from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LiveBroadcastContent(str, Enum):
    """Values of `snippet.liveBroadcastContent` in the YouTube Data API."""

    LIVE = "live"
    UPCOMING = "upcoming"
    NONE = "none"


class Thumbnail(BaseModel):
    url: str
    width: int | None = None
    height: int | None = None


class Thumbnails(BaseModel):
    default: Thumbnail | None = None
    medium: Thumbnail | None = None
    high: Thumbnail | None = None

    def best_url(self) -> str | None:
        for thumb in (self.high, self.medium, self.default):
            if thumb is not None:
                return thumb.url
        return None


class VideoSnippet(BaseModel):
    title: str = ""
    channel_id: str | None = Field(default=None, alias="channelId")
    live_broadcast_content: str = Field(
        default=LiveBroadcastContent.NONE.value,
        alias="liveBroadcastContent",
        description="live, upcoming or none",
    )
    thumbnails: Thumbnails = Field(default_factory=Thumbnails)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class VideoStatistics(BaseModel):
    # The API returns counters as decimal strings
    view_count: int = Field(default=0, alias="viewCount")
    like_count: int = Field(default=0, alias="likeCount")
    comment_count: int = Field(default=0, alias="commentCount")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LiveStreamingDetails(BaseModel):
    scheduled_start_time: datetime | None = Field(default=None, alias="scheduledStartTime")
    actual_start_time: datetime | None = Field(default=None, alias="actualStartTime")
    actual_end_time: datetime | None = Field(default=None, alias="actualEndTime")
    concurrent_viewers: int | None = Field(default=None, alias="concurrentViewers")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class YouTubeVideo(BaseModel):
    """One item of a `videos.list` response."""

    id: str
    snippet: VideoSnippet = Field(default_factory=VideoSnippet)
    statistics: VideoStatistics = Field(default_factory=VideoStatistics)
    live_streaming_details: LiveStreamingDetails | None = Field(
        default=None, alias="liveStreamingDetails"
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class VideoListResponse(BaseModel):
    items: list[YouTubeVideo] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class StreamStatusError(str, Enum):
    NOT_FOUND = "not found"
    NOT_LIVE_STREAM = "not a live stream"
    UPSTREAM_ERROR = "upstream error"

    def __str__(self) -> str:
        return self.value


class StreamStatus(BaseModel):
    """Normalized live/waiting/ended view of a broadcast.

    Results served from cache are the same frozen instance that was stored.
    """

    is_valid: bool
    is_waiting_room: bool = False
    is_live: bool = False
    title: str | None = None
    thumbnail: str | None = None
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    scheduled_start_time: datetime | None = None
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None
    error: StreamStatusError | None = None

    model_config = ConfigDict(frozen=True)


class StreamInfo(BaseModel):
    """Display-only stream metadata."""

    title: str = ""
    thumbnail: str = ""
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    is_live: bool = False
    scheduled_start_time: datetime | None = None
    actual_start_time: datetime | None = None
