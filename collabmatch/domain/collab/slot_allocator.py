"""Partner slot allocation over a collab's slot list.

Slot 0 always belongs to the creator and is never counted or handed out.
Partner slots are `1..max_partners`; a missing entry counts as empty.
"""

from collabmatch.schemas import CollabStatus
from collabmatch.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .collab_models import CollabResponse


def _partner_indexes(collab: CollabResponse) -> range:
    return range(1, collab.max_partners + 1)


def occupied_count(collab: CollabResponse) -> int:
    """Number of filled partner slots (the creator's slot is excluded)."""
    count = 0
    for index in _partner_indexes(collab):
        slot = collab.slot(index)
        if slot is not None and slot.is_occupied:
            count += 1
    return count


def next_free_slot(collab: CollabResponse) -> int | None:
    """Lowest empty partner slot index, or None when every partner slot is filled."""
    for index in _partner_indexes(collab):
        slot = collab.slot(index)
        if slot is None or not slot.is_occupied:
            return index
    return None


def check_can_match(collab: CollabResponse, user_id: str, video_id: str) -> int:
    """Validate a match attempt and return the slot the user would occupy.

    Raises:
        AppError: When the collab is not open, the user is the creator or already
            a partner, the stream is the creator's own, or no slot is free.
    """
    if collab.status != CollabStatus.OPEN:
        raise AppError(
            errcode=AppErrorCode.E_COLLAB_NOT_OPEN,
            errmesg=f"Collab {collab.collab_id} is not open for matching (status: {collab.status})",
            status_code=HttpStatusCode.BAD_REQUEST,
        )

    if user_id == collab.creator_id:
        raise AppError(
            errcode=AppErrorCode.E_SELF_MATCH,
            errmesg="You cannot match with your own collab",
            status_code=HttpStatusCode.BAD_REQUEST,
        )

    if any(slot.user_id == user_id for slot in collab.slots):
        raise AppError(
            errcode=AppErrorCode.E_ALREADY_PARTNER,
            errmesg=f"User {user_id} already holds a slot in collab {collab.collab_id}",
            status_code=HttpStatusCode.BAD_REQUEST,
        )

    creator_slot = collab.creator_slot
    if creator_slot is not None and creator_slot.video_id == video_id:
        raise AppError(
            errcode=AppErrorCode.E_DUPLICATE_STREAM,
            errmesg="Partner stream must differ from the creator's stream",
            status_code=HttpStatusCode.BAD_REQUEST,
        )

    index = next_free_slot(collab)
    if index is None:
        raise AppError(
            errcode=AppErrorCode.E_COLLAB_FULL,
            errmesg=f"Collab {collab.collab_id} has no free partner slot",
            status_code=HttpStatusCode.CONFLICT,
        )
    return index
