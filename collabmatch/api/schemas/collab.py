from datetime import datetime

from pydantic import BaseModel, Field, field_serializer, field_validator

from collabmatch.schemas import CollabStatus, CollabType, StreamPhase
from collabmatch.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .serializers import serialize_optional_utc_datetime, serialize_utc_datetime


def _require_text(field: str, v: str) -> str:
    v = v.strip()
    if not v:
        raise AppError(
            errcode=AppErrorCode.E_INVALID_PARAMS,
            errmesg=f"{field} is required",
            status_code=HttpStatusCode.BAD_REQUEST,
        )
    return v


class CreateCollabIn(BaseModel):
    title: str = Field(description="Title of the collab")
    description: str = Field(description="What the creator is looking for")
    collab_type: CollabType = Field(description="Kind of stream")
    max_partners: int = Field(description="Number of partner slots (1 or 2)")
    stream_url: str = Field(description="Creator's YouTube livestream link, still in its waiting room")

    @field_validator("title", "description", "stream_url")
    @classmethod
    def validate_text(cls, v: str, info) -> str:
        return _require_text(info.field_name, v)


class CreateCollabOut(BaseModel):
    collab_id: str = Field(description="Unique identifier for the created collab")
    status: str


class MatchCollabIn(BaseModel):
    collab_id: str = Field(description="Collab to join")
    description: str = Field(description="Partner introduction")
    stream_url: str = Field(description="Partner's YouTube livestream link, still in its waiting room")

    @field_validator("collab_id", "description", "stream_url")
    @classmethod
    def validate_text(cls, v: str, info) -> str:
        return _require_text(info.field_name, v)


class CollabIdIn(BaseModel):
    collab_id: str = Field(description="Collab identifier")


class StreamSnapshotOut(BaseModel):
    phase: StreamPhase
    is_live: bool
    title: str
    thumbnail: str
    view_count: int
    like_count: int
    comment_count: int
    checked_at: datetime | None = None

    @field_serializer("checked_at")
    def serialize_checked_at(self, dt: datetime | None) -> str | None:
        return serialize_optional_utc_datetime(dt)


class CollabSlotOut(BaseModel):
    index: int
    user_id: str | None = None
    stream_url: str = ""
    description: str = ""
    matched_at: datetime | None = None
    stream: StreamSnapshotOut | None = None

    @field_serializer("matched_at")
    def serialize_matched_at(self, dt: datetime | None) -> str | None:
        return serialize_optional_utc_datetime(dt)


class CollabTotalsOut(BaseModel):
    views: int = 0
    likes: int = 0
    comments: int = 0


class CollabOut(BaseModel):
    collab_id: str
    creator_id: str
    title: str
    description: str
    collab_type: CollabType
    max_partners: int
    partner_count: int
    slots: list[CollabSlotOut]
    status: CollabStatus
    totals: CollabTotalsOut | None = None
    created_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None
    last_status_check: datetime | None = None

    @field_serializer("created_at")
    def serialize_created_at(self, dt: datetime) -> str:
        return serialize_utc_datetime(dt)

    @field_serializer("started_at", "ended_at", "last_status_check")
    def serialize_optional_dates(self, dt: datetime | None) -> str | None:
        return serialize_optional_utc_datetime(dt)


class ListCollabsOut(BaseModel):
    collabs: list[CollabOut]
    next_cursor: str | None = None


class MyActiveCollabOut(BaseModel):
    has_active_collab: bool
    active_collab: CollabOut | None = None
