"""Base service for collab operations."""

from loguru import logger

from collabmatch.services.youtube.stream_status_resolver import StreamStatusResolver
from collabmatch.services.youtube.video_ref import extract_video_id
from collabmatch.services.youtube.youtube_schemas import StreamStatusError
from collabmatch.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .collab_models import CollabResponse
from .collab_store import CollabStore
from .status_aggregator import CollabStatusAggregator


class BaseService:
    """Base service with shared collab operation methods."""

    def __init__(self, aggregator: CollabStatusAggregator):
        self.aggregator = aggregator

    @property
    def store(self) -> CollabStore:
        return self.aggregator.store

    @property
    def resolver(self) -> StreamStatusResolver:
        return self.aggregator.resolver

    async def _get_collab(self, collab_id: str) -> CollabResponse:
        """
        Retrieve a collab by collab_id.

        Raises:
            AppError: E_COLLAB_NOT_FOUND if no collab has that id
        """
        collab = await self.store.get(collab_id)
        if not collab:
            raise AppError(
                errcode=AppErrorCode.E_COLLAB_NOT_FOUND,
                errmesg=f"Collab not found: {collab_id}",
                status_code=HttpStatusCode.NOT_FOUND,
            )
        return collab

    def _parse_stream_link(self, stream_url: str) -> str:
        video_id = extract_video_id(stream_url)
        if not video_id:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_STREAM_LINK,
                errmesg=f"Not a recognized YouTube link: {stream_url}",
                status_code=HttpStatusCode.BAD_REQUEST,
            )
        return video_id

    async def _require_waiting_room(self, video_id: str) -> None:
        """
        Ensure `video_id` is a scheduled broadcast that has not started yet.

        Raises:
            AppError: E_STREAM_UNVERIFIABLE when the provider cannot be reached and
                nothing is cached, E_STREAM_NOT_WAITING for anything but a waiting room
        """
        status = await self.resolver.check_stream_status(
            video_id, cache_ttl=self.aggregator.event_cache_ttl
        )

        if status.error == StreamStatusError.UPSTREAM_ERROR:
            raise AppError(
                errcode=AppErrorCode.E_STREAM_UNVERIFIABLE,
                errmesg="Could not verify the stream right now, please try again shortly",
                status_code=HttpStatusCode.SERVICE_UNAVAILABLE,
            )

        if not status.is_valid or not status.is_waiting_room:
            logger.info(f"Stream {video_id} rejected: not in waiting room (error={status.error})")
            raise AppError(
                errcode=AppErrorCode.E_STREAM_NOT_WAITING,
                errmesg="The link is not a scheduled livestream, or the stream has already started",
                status_code=HttpStatusCode.BAD_REQUEST,
            )
