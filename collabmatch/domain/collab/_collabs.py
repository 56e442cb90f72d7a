"""Collab operations."""

from loguru import logger

from collabmatch.app_config import get_app_environ_config
from collabmatch.schemas import CollabSlot, CollabStatus, CollabType
from collabmatch.shared.timeutils import utc_now
from collabmatch.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from ..utils.idgen import new_collab_id
from ._base import BaseService
from .collab_models import CollabCreateParams, CollabListResponse, CollabResponse


class CollabOperations(BaseService):
    """Collab-related operations."""

    async def create_collab(
        self,
        params: CollabCreateParams,
    ) -> CollabResponse:
        """
        Create a new collab with the creator in slot 0, then run a first status pass.

        Raises AppError on invalid parameters, an unusable stream link, or when the
        creator already has an active collab.
        """
        max_partners_limit = get_app_environ_config().MAX_PARTNERS_LIMIT
        if not 1 <= params.max_partners <= max_partners_limit:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_PARAMS,
                errmesg=f"max_partners must be between 1 and {max_partners_limit}",
                status_code=HttpStatusCode.BAD_REQUEST,
            )

        video_id = self._parse_stream_link(params.stream_url)

        existing = await self.store.find_active_by_creator(params.creator_id)
        if existing:
            raise AppError(
                errcode=AppErrorCode.E_ACTIVE_COLLAB_EXISTS,
                errmesg=f"Active collab already exists for user {params.creator_id}: {existing.collab_id}",
                status_code=HttpStatusCode.CONFLICT,
            )

        await self._require_waiting_room(video_id)

        now = utc_now()
        slots = [
            CollabSlot(
                index=0,
                user_id=params.creator_id,
                stream_url=params.stream_url,
                video_id=video_id,
                description=params.description,
                matched_at=now,
            )
        ]
        slots.extend(CollabSlot(index=i) for i in range(1, params.max_partners + 1))

        collab = CollabResponse(
            collab_id=new_collab_id(),
            creator_id=params.creator_id,
            title=params.title,
            description=params.description,
            collab_type=params.collab_type,
            max_partners=params.max_partners,
            slots=slots,
            status=CollabStatus.OPEN,
            created_at=now,
            updated_at=now,
        )

        logger.debug(f"Creating collab: {collab.collab_id} for user {params.creator_id}")
        created = await self.store.insert(collab)
        logger.info(f"Collab {created.collab_id} created by {created.creator_id}")

        return await self.aggregator.refresh(created.collab_id)

    async def get_collab(
        self,
        collab_id: str,
    ) -> CollabResponse:
        return await self._get_collab(collab_id)

    async def list_collabs(
        self,
        *,
        status: list[CollabStatus] | None = None,
        collab_type: CollabType | None = None,
        page_size: int = 20,
        cursor: str | None = None,
    ) -> CollabListResponse:
        """
        Return collabs newest first with optional filters.

        Returns CollabListResponse with collabs and next_cursor.
        """
        if page_size < 1 or page_size > 100:
            logger.warning(f"Invalid page_size: {page_size}")
            page_size = 20

        collabs, next_cursor = await self.store.list_collabs(
            status=status,
            collab_type=collab_type,
            page_size=page_size,
            cursor=cursor,
        )
        return CollabListResponse(collabs=collabs, next_cursor=next_cursor)

    async def list_user_collabs(
        self,
        user_id: str,
    ) -> CollabListResponse:
        collabs = await self.store.list_by_user(user_id)
        return CollabListResponse(collabs=collabs)

    async def get_my_active_collab(
        self,
        user_id: str,
    ) -> CollabResponse | None:
        return await self.store.find_active_by_creator(user_id)

    async def delete_collab(
        self,
        collab_id: str,
        user_id: str,
    ) -> None:
        """
        Delete a collab. Only the creator may delete, and only while it is open.

        Raises AppError if not found, not owned by the caller, or no longer open.
        """
        collab = await self._get_collab(collab_id)

        if collab.creator_id != user_id:
            raise AppError(
                errcode=AppErrorCode.E_FORBIDDEN,
                errmesg="Only the creator can delete this collab",
                status_code=HttpStatusCode.FORBIDDEN,
            )

        # Status is re-checked atomically by the delete filter
        if collab.status != CollabStatus.OPEN or not await self.store.delete_open(collab_id):
            raise AppError(
                errcode=AppErrorCode.E_COLLAB_NOT_OPEN,
                errmesg="Only open collabs can be deleted",
                status_code=HttpStatusCode.BAD_REQUEST,
            )
