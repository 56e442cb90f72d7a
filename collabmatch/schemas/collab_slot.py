"""Embedded models stored inside a collab document."""

from datetime import datetime

from pydantic import BaseModel, Field

from .collab_status import StreamPhase


class StreamSnapshot(BaseModel):
    """Last known classification and metrics of a slot's stream."""

    phase: StreamPhase = StreamPhase.NO_DATA
    is_live: bool = False
    title: str = ""
    thumbnail: str = ""
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    checked_at: datetime | None = None


class CollabSlot(BaseModel):
    """One participant position. Slot 0 belongs to the creator."""

    index: int = Field(ge=0)
    user_id: str | None = None
    stream_url: str = ""
    video_id: str | None = None
    description: str = ""
    matched_at: datetime | None = None
    last_known_status: StreamSnapshot | None = None

    @property
    def is_occupied(self) -> bool:
        return self.user_id is not None

    @property
    def has_stream(self) -> bool:
        return bool(self.stream_url and self.video_id)


class CollabTotals(BaseModel):
    """Aggregated metrics, written when a collab ends."""

    views: int = 0
    likes: int = 0
    comments: int = 0
