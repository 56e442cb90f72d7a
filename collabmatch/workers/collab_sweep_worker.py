"""Streaq worker that periodically refreshes the status of active collabs.

Run with:
    streaq collabmatch.workers.collab_sweep_worker.worker
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from loguru import logger
from streaq import Worker

from collabmatch.app_config import get_app_environ_config
from collabmatch.domain.collab.collab_store import CollabStore
from collabmatch.domain.collab.status_aggregator import CollabStatusAggregator
from collabmatch.schemas.init_schemas import init_schema
from collabmatch.services.youtube.stream_status_resolver import StreamStatusResolver
from collabmatch.shared.api.utils import init_logger
from collabmatch.shared.storage.mongo import get_mongo_manager

SVC_KEY = "collabmatch"
QUEUE_KEY_COLLAB_SWEEP = f"{SVC_KEY}:streaq:collab-sweep"


@dataclass
class SweepContext:
    aggregator: CollabStatusAggregator


@asynccontextmanager
async def sweep_lifespan() -> AsyncIterator[SweepContext]:
    """Lifespan context manager for the sweep worker."""
    init_logger()
    logger.info("Starting collab sweep worker")
    await init_schema()

    resolver = StreamStatusResolver.from_config()
    aggregator = CollabStatusAggregator.from_config(resolver, CollabStore())
    logger.info("Collab sweep worker initialized")

    try:
        yield SweepContext(aggregator=aggregator)
    finally:
        get_mongo_manager().close_all()
        logger.info("Collab sweep worker stopped")


async def run_sweep(aggregator: CollabStatusAggregator, limit: int) -> dict[str, Any]:
    """Refresh up to `limit` active collabs. Terminal collabs are never selected."""
    logger.info(f"Running collab sweep (limit={limit})")
    return await aggregator.sweep(limit=limit)


worker: Worker[SweepContext] = Worker(
    redis_url=get_app_environ_config().REDIS_QUEUE_URL,
    lifespan=sweep_lifespan,  # type: ignore[arg-type]
    queue_name=QUEUE_KEY_COLLAB_SWEEP,
)


@worker.cron(get_app_environ_config().SWEEP_CRON)
async def sweep_active_collabs() -> dict[str, Any]:
    """Periodic status pass over active collabs."""
    return await run_sweep(worker.context.aggregator, get_app_environ_config().SWEEP_BATCH_SIZE)
