"""Collab status aggregator.

Single entry point used by every trigger (create, match, explicit refresh and
the periodic sweep) to recompute a collab's status:

    load -> resolve occupied slots concurrently -> evaluate -> version-checked write

Per-slot lookups are isolated: one failing lookup marks that slot NO_DATA for
the pass and never aborts the others.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

from loguru import logger

from collabmatch.app_config import get_app_environ_config
from collabmatch.schemas import CollabSlot, StreamPhase, StreamSnapshot
from collabmatch.services.youtube.stream_status_resolver import (
    StreamStatusResolver,
    classify_stream_status,
)
from collabmatch.services.youtube.youtube_schemas import StreamStatus
from collabmatch.shared.timeutils import utc_now
from collabmatch.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .collab_models import CollabResponse, CollabUpdate
from .collab_state_machine import CollabStateMachine, CollabTransition, SlotReading
from .collab_store import CollabStore

# Attempts at the version-checked write before a conflict propagates
MAX_WRITE_ATTEMPTS = 2


def snapshot_from_status(status: StreamStatus, phase: StreamPhase, now: datetime) -> StreamSnapshot:
    return StreamSnapshot(
        phase=phase,
        is_live=status.is_live,
        title=status.title or "",
        thumbnail=status.thumbnail or "",
        view_count=status.view_count,
        like_count=status.like_count,
        comment_count=status.comment_count,
        checked_at=now,
    )


class CollabStatusAggregator:
    def __init__(
        self,
        resolver: StreamStatusResolver,
        store: CollabStore,
        *,
        event_cache_ttl: float = 300,
        sweep_cache_ttl: float = 900,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.resolver = resolver
        self.store = store
        self.event_cache_ttl = event_cache_ttl
        self.sweep_cache_ttl = sweep_cache_ttl
        self._clock = clock

    @classmethod
    def from_config(cls, resolver: StreamStatusResolver, store: CollabStore) -> "CollabStatusAggregator":
        cfg = get_app_environ_config()
        return cls(
            resolver,
            store,
            event_cache_ttl=cfg.EVENT_CACHE_TTL_SECONDS,
            sweep_cache_ttl=cfg.SWEEP_CACHE_TTL_SECONDS,
        )

    async def _load(self, collab_id: str) -> CollabResponse:
        collab = await self.store.get(collab_id)
        if not collab:
            raise AppError(
                errcode=AppErrorCode.E_COLLAB_NOT_FOUND,
                errmesg=f"Collab not found: {collab_id}",
                status_code=HttpStatusCode.NOT_FOUND,
            )
        return collab

    async def _read_slot(self, slot: CollabSlot, cache_ttl: float, now: datetime) -> SlotReading:
        status = await self.resolver.check_stream_status(slot.video_id, cache_ttl=cache_ttl)  # type: ignore[arg-type]
        phase = classify_stream_status(status)
        if phase == StreamPhase.NO_DATA:
            return SlotReading(phase=phase)
        return SlotReading(phase=phase, snapshot=snapshot_from_status(status, phase, now))

    async def resolve_slots(
        self,
        collab: CollabResponse,
        cache_ttl: float,
        now: datetime,
    ) -> dict[int, SlotReading]:
        """Resolve every occupied slot that carries a stream reference, concurrently."""
        targets = [slot for slot in collab.occupied_slots if slot.has_stream]
        results = await asyncio.gather(
            *(self._read_slot(slot, cache_ttl, now) for slot in targets),
            return_exceptions=True,
        )

        readings: dict[int, SlotReading] = {}
        for slot, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(
                    f"Stream lookup failed for collab {collab.collab_id} slot {slot.index} "
                    f"({slot.video_id}): {result!r}"
                )
                readings[slot.index] = SlotReading(phase=StreamPhase.NO_DATA)
            elif isinstance(result, BaseException):
                raise result
            else:
                readings[slot.index] = result
        return readings

    @staticmethod
    def build_update(
        collab: CollabResponse,
        readings: dict[int, SlotReading],
        transition: CollabTransition,
    ) -> CollabUpdate:
        """Merge fresh slot snapshots with the transition's status fields.

        Slots without a fresh snapshot keep their last known status.
        """
        update = transition.to_update()

        refreshed = False
        slots: list[CollabSlot] = []
        for slot in collab.slots:
            reading = readings.get(slot.index)
            if reading is not None and reading.snapshot is not None:
                slots.append(slot.model_copy(update={"last_known_status": reading.snapshot}))
                refreshed = True
            else:
                slots.append(slot)

        if refreshed:
            update.slots = slots
        return update

    async def refresh(
        self,
        collab_id: str,
        *,
        cache_ttl: float | None = None,
        mark_swept: bool = False,
    ) -> CollabResponse:
        """Recompute and persist the status of one collab.

        Args:
            collab_id: Collab identifier
            cache_ttl: Freshness window for stream lookups; defaults to the event window
            mark_swept: Stamp `last_swept_at` even when nothing else changed, so the
                sweep rotates past collabs whose streams cannot be resolved

        Returns:
            The collab as stored after the pass.

        Raises:
            AppError: E_COLLAB_NOT_FOUND, or E_COLLAB_VERSION_CONFLICT when the
                write loses the race twice.
        """
        ttl = self.event_cache_ttl if cache_ttl is None else cache_ttl

        attempt = 0
        while True:
            attempt += 1
            collab = await self._load(collab_id)
            if CollabStateMachine.is_terminal(collab.status):
                return collab

            now = self._clock()
            readings = await self.resolve_slots(collab, ttl, now)
            transition = CollabStateMachine.evaluate(collab, readings, now)
            update = self.build_update(collab, readings, transition)
            if mark_swept:
                update.last_swept_at = now

            if not update.model_fields_set:
                return collab

            try:
                await self.store.update_with_version_check(collab.collab_id, collab.version, update)
            except AppError as e:
                if (
                    e.errcode != AppErrorCode.E_COLLAB_VERSION_CONFLICT.value
                    or attempt == MAX_WRITE_ATTEMPTS
                ):
                    raise
                logger.warning(f"Version conflict refreshing collab {collab_id}, re-evaluating")
                continue

            if transition.status_changed:
                logger.info(
                    f"Collab {collab_id} status {transition.previous_status} -> "
                    f"{transition.status} (rule={transition.rule})"
                )
            return await self._load(collab_id)

    async def sweep(self, limit: int = 200) -> dict[str, int]:
        """Refresh every active collab, least recently swept first.

        Failures are logged and counted per collab and never raised.
        """
        collabs = await self.store.list_due_for_sweep(limit=limit)

        checked = changed = failed = 0
        for collab in collabs:
            try:
                fresh = await self.refresh(
                    collab.collab_id, cache_ttl=self.sweep_cache_ttl, mark_swept=True
                )
            except Exception as e:
                failed += 1
                logger.warning(f"Sweep failed for collab {collab.collab_id}: {e!r}")
                continue

            checked += 1
            if fresh.status != collab.status:
                changed += 1

        summary = {"selected": len(collabs), "checked": checked, "changed": changed, "failed": failed}
        logger.info(f"Collab sweep finished: {summary}")
        return summary
