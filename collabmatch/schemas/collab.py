"""Collab ODM schema."""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from beanie.odm.operators.update.general import Set
from loguru import logger
from pydantic import Field, field_validator
from pymongo import IndexModel

from collabmatch.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .collab_slot import CollabSlot, CollabTotals
from .collab_status import CollabStatus, CollabType
from .schema_utils import parse_mongo_datetime


class Collab(Document):
    """Collab document model."""

    collab_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    creator_id: str

    # Descriptor fields
    title: str
    description: str
    collab_type: CollabType

    # Slot layout: slot 0 is the creator, 1..max_partners are partners
    max_partners: int = Field(ge=1, le=2)
    slots: list[CollabSlot] = Field(default_factory=list)

    status: CollabStatus = CollabStatus.OPEN
    totals: CollabTotals = Field(default_factory=CollabTotals)

    # Timestamps
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None
    last_status_check: datetime | None = None
    last_swept_at: datetime | None = None

    # Version control for optimistic locking
    version: int = Field(default=1)

    @field_validator(
        "created_at",
        "updated_at",
        "started_at",
        "ended_at",
        "last_status_check",
        "last_swept_at",
        mode="before",
    )
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Parse MongoDB Extended JSON datetime format."""
        return parse_mongo_datetime(v)

    @classmethod
    async def update_with_version_check(
        cls,
        collab_id: str,
        expected_version: int,
        updates: Mapping[str, Any],
    ) -> int:
        """Atomically set fields on a collab if its version still matches.

        Args:
            collab_id: Collab identifier
            expected_version: Version the caller based its changes on
            updates: Mapping of field names to values. Must not include `version`.

        Returns:
            The new version.

        Raises:
            AppError: E_COLLAB_VERSION_CONFLICT if another writer updated the collab first,
                E_INVALID_REQUEST if updates include `version`.
        """
        if "version" in updates:
            raise AppError(
                AppErrorCode.E_INVALID_REQUEST,
                "updates must not include version",
                HttpStatusCode.BAD_REQUEST,
            )

        new_version = expected_version + 1
        update_fields = dict(updates)
        update_fields["version"] = new_version

        result = await cls.find(
            cls.collab_id == collab_id,
            cls.version == expected_version,
        ).update(Set(update_fields))  # type: ignore[arg-type]

        if result and result.modified_count > 0:
            logger.debug(
                f"Collab {collab_id} updated (version {expected_version} -> {new_version})"
            )
            return new_version

        fresh = await cls.find_one(cls.collab_id == collab_id)
        error_msg = (
            f"Version conflict on collab {collab_id}: expected version {expected_version}, "
            f"current version {fresh.version if fresh else 'N/A'}"
        )
        logger.warning(error_msg)
        raise AppError(
            errcode=AppErrorCode.E_COLLAB_VERSION_CONFLICT,
            errmesg=error_msg,
            status_code=HttpStatusCode.CONFLICT,
        )

    class Settings:
        name = "collab"
        indexes = [
            [("collab_id", 1)],  # unique handled by Indexed
            [("status", 1), ("created_at", -1)],
            [("creator_id", 1)],
            [("slots.user_id", 1)],
            IndexModel(
                [("creator_id", 1)],
                partialFilterExpression={
                    "status": {"$in": ["open", "setting_up", "in_progress"]},
                },
                unique=True,
                name="creator_id_active_unique",
            ),
            IndexModel(
                [("last_swept_at", 1), ("created_at", 1)],
                partialFilterExpression={
                    "status": {"$in": ["open", "setting_up", "in_progress"]},
                },
                name="last_swept_at_active_partial",
            ),
        ]
