"""Partner match operations."""

from datetime import datetime

from loguru import logger

from collabmatch.schemas import CollabSlot
from collabmatch.shared.timeutils import utc_now
from collabmatch.utils.app_errors import AppError, AppErrorCode

from ._base import BaseService
from .collab_models import CollabMatchParams, CollabResponse, CollabUpdate
from .slot_allocator import check_can_match

# A lost race re-reads the collab and re-validates once
MAX_MATCH_ATTEMPTS = 2


def _fill_slot(
    collab: CollabResponse,
    index: int,
    params: CollabMatchParams,
    video_id: str,
    now: datetime,
) -> list[CollabSlot]:
    partner = CollabSlot(
        index=index,
        user_id=params.user_id,
        stream_url=params.stream_url,
        video_id=video_id,
        description=params.description,
        matched_at=now,
    )
    slots = [slot for slot in collab.slots if slot.index != index]
    slots.append(partner)
    return sorted(slots, key=lambda slot: slot.index)


class MatchOperations(BaseService):
    """Operations for joining a collab as a partner."""

    async def match_collab(
        self,
        params: CollabMatchParams,
    ) -> CollabResponse:
        """Place the user in the next free partner slot and recompute the status.

        The slot write is version-checked, so two concurrent matches can never
        claim the same slot: the loser re-reads the collab and is re-validated
        against the allocator (it gets the next slot, or E_COLLAB_FULL).

        Args:
            params: Collab id, partner user id, description and stream link

        Returns:
            CollabResponse after the status pass, or as matched if that pass failed

        Raises:
            AppError: On an invalid link, a stream that is not in its waiting room,
                or any allocator rejection
        """
        video_id = self._parse_stream_link(params.stream_url)

        collab = await self._get_collab(params.collab_id)
        # Reject on local invariants before spending an upstream lookup
        check_can_match(collab, params.user_id, video_id)

        await self._require_waiting_room(video_id)

        for attempt in range(1, MAX_MATCH_ATTEMPTS + 1):
            index = check_can_match(collab, params.user_id, video_id)
            slots = _fill_slot(collab, index, params, video_id, utc_now())
            try:
                await self.store.update_with_version_check(
                    collab.collab_id, collab.version, CollabUpdate(slots=slots)
                )
            except AppError as e:
                if (
                    e.errcode != AppErrorCode.E_COLLAB_VERSION_CONFLICT.value
                    or attempt == MAX_MATCH_ATTEMPTS
                ):
                    raise
                logger.warning(f"Version conflict matching collab {collab.collab_id}, retrying")
                collab = await self._get_collab(params.collab_id)
                continue

            logger.info(f"User {params.user_id} matched into collab {collab.collab_id} slot {index}")
            break

        try:
            return await self.aggregator.refresh(collab.collab_id)
        except AppError as e:
            # The slot is already written; the next refresh or sweep recomputes the status
            logger.warning(
                f"Status pass after matching collab {collab.collab_id} failed: {e.errcode} {e.errmesg}"
            )
            return await self._get_collab(collab.collab_id)
