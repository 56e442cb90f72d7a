"""Display refresh of slot stream metadata."""

import asyncio
from datetime import datetime

from loguru import logger

from collabmatch.schemas import CollabSlot, StreamSnapshot
from collabmatch.services.youtube.youtube_schemas import StreamInfo
from collabmatch.shared.timeutils import utc_now
from collabmatch.utils.app_errors import AppError, AppErrorCode

from ._base import BaseService
from .collab_models import CollabResponse, CollabUpdate
from .collab_state_machine import CollabStateMachine

# A concurrent status pass re-reads the collab and reapplies the fetched info once
MAX_INFO_WRITE_ATTEMPTS = 2


def _apply_infos(
    collab: CollabResponse,
    infos: dict[str, StreamInfo],
    now: datetime,
) -> tuple[list[CollabSlot], int]:
    slots: list[CollabSlot] = []
    applied = 0
    for slot in collab.slots:
        info = infos.get(slot.video_id) if slot.is_occupied and slot.video_id else None
        if info is None:
            slots.append(slot)
            continue

        previous = slot.last_known_status or StreamSnapshot()
        snapshot = previous.model_copy(
            update={
                "is_live": info.is_live,
                "title": info.title,
                "thumbnail": info.thumbnail,
                "view_count": info.view_count,
                "like_count": info.like_count,
                "comment_count": info.comment_count,
                "checked_at": now,
            }
        )
        slots.append(slot.model_copy(update={"last_known_status": snapshot}))
        applied += 1
    return slots, applied


class StreamInfoOperations(BaseService):
    """Refreshes the metadata shown next to each slot (title, thumbnail, counters).

    Bypasses the status cache and never changes the collab status: the stream
    phase of each snapshot is kept as last classified.
    """

    async def refresh_stream_info(
        self,
        collab_id: str,
    ) -> CollabResponse:
        collab = await self._get_collab(collab_id)
        if CollabStateMachine.is_terminal(collab.status):
            return collab

        targets = [slot.video_id for slot in collab.occupied_slots if slot.has_stream]
        results = await asyncio.gather(
            *(self.resolver.get_stream_info(video_id) for video_id in targets),  # type: ignore[arg-type]
        )
        infos = {video_id: info for video_id, info in zip(targets, results) if info is not None}

        if not infos:
            logger.debug(f"No stream info available for collab {collab_id}")
            return collab

        for attempt in range(1, MAX_INFO_WRITE_ATTEMPTS + 1):
            slots, applied = _apply_infos(collab, infos, utc_now())
            try:
                await self.store.update_with_version_check(
                    collab.collab_id, collab.version, CollabUpdate(slots=slots)
                )
            except AppError as e:
                if (
                    e.errcode != AppErrorCode.E_COLLAB_VERSION_CONFLICT.value
                    or attempt == MAX_INFO_WRITE_ATTEMPTS
                ):
                    raise
                logger.warning(f"Version conflict refreshing stream info of collab {collab_id}, retrying")
                collab = await self._get_collab(collab_id)
                if CollabStateMachine.is_terminal(collab.status):
                    return collab
                continue

            logger.debug(f"Stream info refreshed for collab {collab_id} ({applied} slots)")
            break

        return await self._get_collab(collab_id)
