"""In-memory collaborators and builders for collab domain tests."""

from datetime import datetime, timezone

import pytest

from collabmatch.domain.collab.collab_domain import CollabService
from collabmatch.domain.collab.collab_models import CollabResponse, CollabUpdate
from collabmatch.domain.collab.collab_store import decode_cursor, encode_cursor
from collabmatch.domain.collab.status_aggregator import CollabStatusAggregator
from collabmatch.schemas import CollabSlot, CollabStatus, CollabType
from collabmatch.services.youtube.youtube_schemas import StreamInfo, StreamStatus, StreamStatusError
from collabmatch.shared.timeutils import dt_to_ms, utc_now
from collabmatch.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)

CREATOR_ID = "u.creator"
PARTNER_IDS = ["u.partner_a", "u.partner_b"]

CREATOR_VIDEO = "creatorVid1"
PARTNER_VIDEOS = ["partnerVidA", "partnerVidB"]


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def waiting_status(**kwargs) -> StreamStatus:
    return StreamStatus(is_valid=True, is_waiting_room=True, title="Starting soon", **kwargs)


def live_status(**kwargs) -> StreamStatus:
    return StreamStatus(is_valid=True, is_live=True, title="Live now", **kwargs)


def ended_status(views: int = 0, likes: int = 0, comments: int = 0) -> StreamStatus:
    return StreamStatus(
        is_valid=False,
        error=StreamStatusError.NOT_LIVE_STREAM,
        title="Finished",
        view_count=views,
        like_count=likes,
        comment_count=comments,
    )


def not_found_status() -> StreamStatus:
    return StreamStatus(is_valid=False, error=StreamStatusError.NOT_FOUND)


def upstream_error_status() -> StreamStatus:
    return StreamStatus(is_valid=False, error=StreamStatusError.UPSTREAM_ERROR)


def make_collab(
    *,
    collab_id: str = "cl_test",
    creator_id: str = CREATOR_ID,
    status: CollabStatus = CollabStatus.OPEN,
    collab_type: CollabType = CollabType.KARAOKE_TALKSHOW,
    creator_video: str = CREATOR_VIDEO,
    max_partners: int = 2,
    partners: list[str] | None = None,
    created_at: datetime = NOW,
    **kwargs,
) -> CollabResponse:
    """Collab with the creator in slot 0 and `partners` filling slots 1.. in order."""
    partners = partners or []
    slots = [
        CollabSlot(
            index=0,
            user_id=creator_id,
            stream_url=watch_url(creator_video),
            video_id=creator_video,
            description="creator",
            matched_at=created_at,
        )
    ]
    for index in range(1, max_partners + 1):
        if index <= len(partners):
            video_id = PARTNER_VIDEOS[index - 1]
            slots.append(
                CollabSlot(
                    index=index,
                    user_id=partners[index - 1],
                    stream_url=watch_url(video_id),
                    video_id=video_id,
                    description=f"partner {index}",
                    matched_at=created_at,
                )
            )
        else:
            slots.append(CollabSlot(index=index))

    return CollabResponse(
        collab_id=collab_id,
        creator_id=creator_id,
        title="Friday night karaoke",
        description="Looking for duet partners",
        collab_type=collab_type,
        max_partners=max_partners,
        slots=slots,
        status=status,
        created_at=created_at,
        updated_at=created_at,
        **kwargs,
    )


def _page_key(collab: CollabResponse) -> tuple[int, str]:
    return dt_to_ms(collab.created_at), collab.collab_id


def _conflict(collab_id: str) -> AppError:
    return AppError(
        errcode=AppErrorCode.E_COLLAB_VERSION_CONFLICT,
        errmesg=f"Version conflict on collab {collab_id}",
        status_code=HttpStatusCode.CONFLICT,
    )


class InMemoryCollabStore:
    """Dict-backed stand-in for CollabStore with the same version-check semantics."""

    def __init__(self):
        self.collabs: dict[str, CollabResponse] = {}
        self.update_calls: list[tuple[str, int, CollabUpdate]] = []
        self.pending_conflicts = 0

    def put(self, collab: CollabResponse) -> CollabResponse:
        self.collabs[collab.collab_id] = collab.model_copy(deep=True)
        return collab

    def inject_conflicts(self, count: int) -> None:
        """Make the next `count` updates fail as if another writer got there first."""
        self.pending_conflicts = count

    async def get(self, collab_id: str) -> CollabResponse | None:
        collab = self.collabs.get(collab_id)
        return collab.model_copy(deep=True) if collab else None

    async def insert(self, collab: CollabResponse) -> CollabResponse:
        if collab.status in CollabStatus.active_states():
            if await self.find_active_by_creator(collab.creator_id):
                raise AppError(
                    errcode=AppErrorCode.E_ACTIVE_COLLAB_EXISTS,
                    errmesg="You already have an active collab",
                    status_code=HttpStatusCode.CONFLICT,
                )
        self.put(collab)
        return collab.model_copy(deep=True)

    async def update_with_version_check(
        self,
        collab_id: str,
        expected_version: int,
        update: CollabUpdate,
    ) -> int:
        self.update_calls.append((collab_id, expected_version, update))

        current = self.collabs.get(collab_id)
        if self.pending_conflicts > 0:
            self.pending_conflicts -= 1
            if current is not None:
                # Simulate the competing write
                self.collabs[collab_id] = current.model_copy(update={"version": current.version + 1})
            raise _conflict(collab_id)

        if current is None or current.version != expected_version:
            raise _conflict(collab_id)

        changes = {name: getattr(update, name) for name in update.model_fields_set}
        new_version = expected_version + 1
        self.collabs[collab_id] = current.model_copy(
            update={**changes, "version": new_version, "updated_at": utc_now()},
            deep=True,
        )
        return new_version

    async def find_active_by_creator(self, creator_id: str) -> CollabResponse | None:
        for collab in self.collabs.values():
            if collab.creator_id == creator_id and collab.status in CollabStatus.active_states():
                return collab.model_copy(deep=True)
        return None

    async def list_collabs(
        self,
        *,
        status: list[CollabStatus] | None = None,
        collab_type: CollabType | None = None,
        page_size: int = 20,
        cursor: str | None = None,
    ) -> tuple[list[CollabResponse], str | None]:
        collabs = list(self.collabs.values())
        if status:
            collabs = [c for c in collabs if c.status in status]
        if collab_type is not None:
            collabs = [c for c in collabs if c.collab_type == collab_type]

        collabs.sort(key=_page_key, reverse=True)

        decoded = decode_cursor(cursor) if cursor else None
        if decoded:
            collabs = [c for c in collabs if _page_key(c) < decoded]

        page = [c.model_copy(deep=True) for c in collabs[:page_size]]
        next_cursor = encode_cursor(page[-1]) if len(collabs) > page_size else None
        return page, next_cursor

    async def list_by_user(self, user_id: str, *, limit: int = 100) -> list[CollabResponse]:
        collabs = [
            c
            for c in self.collabs.values()
            if c.creator_id == user_id or any(slot.user_id == user_id for slot in c.slots)
        ]
        collabs.sort(key=lambda c: c.created_at, reverse=True)
        return [c.model_copy(deep=True) for c in collabs[:limit]]

    async def list_due_for_sweep(self, *, limit: int) -> list[CollabResponse]:
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        collabs = [c for c in self.collabs.values() if c.status in CollabStatus.active_states()]
        collabs.sort(key=lambda c: (c.last_swept_at or epoch, c.created_at))
        return [c.model_copy(deep=True) for c in collabs[:limit]]

    async def delete_open(self, collab_id: str) -> bool:
        collab = self.collabs.get(collab_id)
        if collab is None or collab.status != CollabStatus.OPEN:
            return False
        del self.collabs[collab_id]
        return True


class FakeResolver:
    """Resolver double: statuses keyed by video id; an Exception value is raised."""

    def __init__(self):
        self.statuses: dict[str, StreamStatus | Exception] = {}
        self.infos: dict[str, StreamInfo] = {}
        self.calls: list[tuple[str, float | None]] = []

    async def check_stream_status(self, video_id: str, cache_ttl: float | None = None) -> StreamStatus:
        self.calls.append((video_id, cache_ttl))
        result = self.statuses.get(video_id, not_found_status())
        if isinstance(result, Exception):
            raise result
        return result

    async def get_stream_info(self, video_id: str) -> StreamInfo | None:
        return self.infos.get(video_id)


@pytest.fixture
def memory_store() -> InMemoryCollabStore:
    return InMemoryCollabStore()


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def aggregator(fake_resolver: FakeResolver, memory_store: InMemoryCollabStore) -> CollabStatusAggregator:
    return CollabStatusAggregator(
        fake_resolver,  # type: ignore[arg-type]
        memory_store,  # type: ignore[arg-type]
        event_cache_ttl=300,
        sweep_cache_ttl=900,
        clock=lambda: NOW,
    )


@pytest.fixture
def collab_service(aggregator: CollabStatusAggregator) -> CollabService:
    return CollabService(aggregator)

