"""Collab domain models."""

from datetime import datetime

from pydantic import BaseModel, Field

from collabmatch.schemas import CollabSlot, CollabStatus, CollabTotals, CollabType


class CollabResponse(BaseModel):
    """Collab view shared by the domain services, the allocator and the state machine."""

    collab_id: str
    creator_id: str

    title: str
    description: str
    collab_type: CollabType

    max_partners: int
    slots: list[CollabSlot] = Field(default_factory=list)

    status: CollabStatus
    totals: CollabTotals = Field(default_factory=CollabTotals)

    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None
    last_status_check: datetime | None = None
    # Set on every sweep pass, whether or not anything changed
    last_swept_at: datetime | None = None

    version: int = 1

    def slot(self, index: int) -> CollabSlot | None:
        for slot in self.slots:
            if slot.index == index:
                return slot
        return None

    @property
    def creator_slot(self) -> CollabSlot | None:
        return self.slot(0)

    @property
    def occupied_slots(self) -> list[CollabSlot]:
        return [slot for slot in self.slots if slot.is_occupied]


class CollabListResponse(BaseModel):
    """Collab list response with pagination."""

    collabs: list[CollabResponse]
    next_cursor: str | None = None


class CollabCreateParams(BaseModel):
    """Parameters for creating a collab."""

    creator_id: str
    title: str
    description: str
    collab_type: CollabType
    max_partners: int
    stream_url: str


class CollabMatchParams(BaseModel):
    """Parameters for matching into a collab."""

    collab_id: str
    user_id: str
    description: str
    stream_url: str


class CollabUpdate(BaseModel):
    """Fields written back to storage. Unset fields are left untouched."""

    slots: list[CollabSlot] | None = None
    status: CollabStatus | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    last_status_check: datetime | None = None
    last_swept_at: datetime | None = None
    totals: CollabTotals | None = None
