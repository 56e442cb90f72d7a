"""Collab persistence over Beanie.

The domain layer never touches `Collab` documents directly: everything goes
through `CollabStore`, which converts documents to `CollabResponse` views and
funnels every write through the version-checked update.
"""

from typing import Any

from beanie.operators import LT, And, In, Or
from loguru import logger
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from collabmatch.schemas import Collab, CollabStatus, CollabType
from collabmatch.shared.timeutils import dt_to_ms, ms_to_dt, utc_now
from collabmatch.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .collab_models import CollabResponse, CollabUpdate


def _to_response(collab: Collab) -> CollabResponse:
    return CollabResponse(**collab.model_dump(exclude={"id", "revision_id"}))


def encode_cursor(collab: CollabResponse) -> str:
    return f"{dt_to_ms(collab.created_at)}|{collab.collab_id}"


def decode_cursor(cursor: str) -> tuple[int, str] | None:
    try:
        ms_str, collab_id = cursor.split("|", 1)
        return int(ms_str), collab_id
    except ValueError:
        logger.warning(f"Invalid cursor format: {cursor}")
        return None


class CollabStore:
    """MongoDB-backed collab storage."""

    async def get(self, collab_id: str) -> CollabResponse | None:
        collab = await Collab.find_one(Collab.collab_id == collab_id)
        return _to_response(collab) if collab else None

    async def insert(self, collab: CollabResponse) -> CollabResponse:
        """Insert a new collab.

        Raises:
            AppError: E_ACTIVE_COLLAB_EXISTS when the creator already has an active
                collab (enforced by the partial unique index).
        """
        document = Collab(**collab.model_dump())
        try:
            await document.insert()
        except DuplicateKeyError as e:
            logger.warning(f"Duplicate key error creating collab for {collab.creator_id}: {e}")
            raise AppError(
                errcode=AppErrorCode.E_ACTIVE_COLLAB_EXISTS,
                errmesg="You already have an active collab. Finish or delete it before creating a new one.",
                status_code=HttpStatusCode.CONFLICT,
            ) from e
        return _to_response(document)

    async def update_with_version_check(
        self,
        collab_id: str,
        expected_version: int,
        update: CollabUpdate,
    ) -> int:
        """Apply `update` if the stored version still equals `expected_version`.

        Returns:
            The new version.

        Raises:
            AppError: E_COLLAB_VERSION_CONFLICT when another writer got there first.
        """
        fields: dict[str, Any] = update.model_dump(exclude_unset=True)
        fields["updated_at"] = utc_now()
        return await Collab.update_with_version_check(collab_id, expected_version, fields)

    async def find_active_by_creator(self, creator_id: str) -> CollabResponse | None:
        collab = await Collab.find_one(
            Collab.creator_id == creator_id,
            In(Collab.status, CollabStatus.active_states()),
        )
        return _to_response(collab) if collab else None

    async def list_collabs(
        self,
        *,
        status: list[CollabStatus] | None = None,
        collab_type: CollabType | None = None,
        page_size: int = 20,
        cursor: str | None = None,
    ) -> tuple[list[CollabResponse], str | None]:
        """List collabs newest first.

        Returns:
            (collabs, next_cursor). next_cursor is None on the last page.
        """
        conditions: list[Any] = []
        if status:
            conditions.append(In(Collab.status, status))
        if collab_type is not None:
            conditions.append(Collab.collab_type == collab_type)

        decoded = decode_cursor(cursor) if cursor else None
        if decoded:
            c_ms, c_id = decoded
            c_dt = ms_to_dt(c_ms)
            # (created_at < c_dt) OR (created_at == c_dt AND collab_id < c_id)
            conditions.append(
                Or(
                    LT(Collab.created_at, c_dt),
                    And(Collab.created_at == c_dt, LT(Collab.collab_id, c_id)),
                )
            )

        query = Collab.find(*conditions) if conditions else Collab.find()
        documents = (
            await query.sort([("created_at", DESCENDING), ("collab_id", DESCENDING)])  # type: ignore
            .limit(page_size + 1)
            .to_list()
        )

        collabs = [_to_response(doc) for doc in documents[:page_size]]
        next_cursor = encode_cursor(collabs[-1]) if len(documents) > page_size else None
        return collabs, next_cursor

    async def list_by_user(self, user_id: str, *, limit: int = 100) -> list[CollabResponse]:
        """Collabs where `user_id` is the creator or holds a partner slot, newest first."""
        documents = (
            await Collab.find(
                Or(
                    Collab.creator_id == user_id,
                    {"slots.user_id": user_id},
                )
            )
            .sort([("created_at", DESCENDING)])  # type: ignore
            .limit(limit)
            .to_list()
        )
        return [_to_response(doc) for doc in documents]

    async def list_due_for_sweep(self, *, limit: int) -> list[CollabResponse]:
        """Active collabs, least recently swept first (never-swept ones lead)."""
        documents = (
            await Collab.find(In(Collab.status, CollabStatus.active_states()))
            .sort([("last_swept_at", ASCENDING), ("created_at", ASCENDING)])  # type: ignore
            .limit(limit)
            .to_list()
        )
        return [_to_response(doc) for doc in documents]

    async def delete_open(self, collab_id: str) -> bool:
        """Delete the collab if it is still open. Returns False when nothing was deleted."""
        result = await Collab.find(
            Collab.collab_id == collab_id,
            Collab.status == CollabStatus.OPEN,
        ).delete()
        deleted = bool(result and result.deleted_count > 0)
        if deleted:
            logger.info(f"Deleted collab {collab_id}")
        return deleted
