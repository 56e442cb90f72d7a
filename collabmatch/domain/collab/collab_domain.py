"""Collab domain service."""

from collabmatch.schemas import CollabStatus, CollabType

from ._collabs import CollabOperations
from ._match import MatchOperations
from ._stream_info import StreamInfoOperations
from .collab_models import (
    CollabCreateParams,
    CollabListResponse,
    CollabMatchParams,
    CollabResponse,
)
from .status_aggregator import CollabStatusAggregator


class CollabService:
    """Facade over the collab operations, sharing one status aggregator."""

    def __init__(self, aggregator: CollabStatusAggregator):
        self.aggregator = aggregator
        self._collabs = CollabOperations(aggregator)
        self._match = MatchOperations(aggregator)
        self._stream_info = StreamInfoOperations(aggregator)

    # ==================== COLLABS ====================

    async def create_collab(
        self,
        params: CollabCreateParams,
    ) -> CollabResponse:
        """Create a new collab.

        Raises AppError if the creator already has an active collab or the stream
        link is not a waiting room.
        """
        return await self._collabs.create_collab(params=params)

    async def get_collab(
        self,
        collab_id: str,
    ) -> CollabResponse:
        """Get a single collab by collab_id.

        Raises AppError if collab not found.
        """
        return await self._collabs.get_collab(collab_id=collab_id)

    async def list_collabs(
        self,
        *,
        status: list[CollabStatus] | None = None,
        collab_type: CollabType | None = None,
        page_size: int = 20,
        cursor: str | None = None,
    ) -> CollabListResponse:
        return await self._collabs.list_collabs(
            status=status,
            collab_type=collab_type,
            page_size=page_size,
            cursor=cursor,
        )

    async def list_user_collabs(
        self,
        user_id: str,
    ) -> CollabListResponse:
        """Collabs where the user is creator or partner, newest first."""
        return await self._collabs.list_user_collabs(user_id=user_id)

    async def get_my_active_collab(
        self,
        user_id: str,
    ) -> CollabResponse | None:
        """The user's non-terminal collab as creator, if any."""
        return await self._collabs.get_my_active_collab(user_id=user_id)

    async def delete_collab(
        self,
        collab_id: str,
        user_id: str,
    ) -> None:
        """Delete an open collab owned by the user.

        Raises AppError if not found, not owned, or no longer open.
        """
        await self._collabs.delete_collab(collab_id=collab_id, user_id=user_id)

    # ==================== MATCH ====================

    async def match_collab(
        self,
        params: CollabMatchParams,
    ) -> CollabResponse:
        """Join a collab as a partner.

        Raises AppError on any allocator rejection or unusable stream link.
        """
        return await self._match.match_collab(params=params)

    # ==================== STATUS ====================

    async def refresh_status(
        self,
        collab_id: str,
    ) -> CollabResponse:
        """Recompute the collab status from its slots' streams."""
        return await self.aggregator.refresh(collab_id)

    async def refresh_stream_info(
        self,
        collab_id: str,
    ) -> CollabResponse:
        """Refresh display metadata of every slot without touching the status."""
        return await self._stream_info.refresh_stream_info(collab_id=collab_id)
