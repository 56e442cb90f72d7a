from fastapi import APIRouter, Depends, Query, Request

from collabmatch.api.dependency import CurrentUser
from collabmatch.api.schemas.base import CwOut
from collabmatch.api.schemas.collab import (
    CollabIdIn,
    CollabOut,
    CollabSlotOut,
    CollabTotalsOut,
    CreateCollabIn,
    CreateCollabOut,
    ListCollabsOut,
    MatchCollabIn,
    MyActiveCollabOut,
    StreamSnapshotOut,
)
from collabmatch.domain.collab.collab_domain import CollabService
from collabmatch.domain.collab.collab_models import (
    CollabCreateParams,
    CollabMatchParams,
    CollabResponse,
)
from collabmatch.domain.collab.slot_allocator import occupied_count
from collabmatch.schemas import CollabStatus, CollabType
from collabmatch.services.api_rate_limiter import (
    create_collab_rate_limit,
    match_collab_rate_limit,
    stream_info_rate_limit,
)

router = APIRouter(prefix="/collab")


def get_collab_service(request: Request) -> CollabService:
    """Get the CollabService built by the application lifespan."""
    return request.app.state.collab_service


def _collab_out(collab: CollabResponse) -> CollabOut:
    return CollabOut(
        collab_id=collab.collab_id,
        creator_id=collab.creator_id,
        title=collab.title,
        description=collab.description,
        collab_type=collab.collab_type,
        max_partners=collab.max_partners,
        partner_count=occupied_count(collab),
        slots=[
            CollabSlotOut(
                index=slot.index,
                user_id=slot.user_id,
                stream_url=slot.stream_url,
                description=slot.description,
                matched_at=slot.matched_at,
                stream=(
                    StreamSnapshotOut(**slot.last_known_status.model_dump())
                    if slot.last_known_status
                    else None
                ),
            )
            for slot in collab.slots
        ],
        status=collab.status,
        totals=(
            CollabTotalsOut(**collab.totals.model_dump())
            if collab.status == CollabStatus.ENDED
            else None
        ),
        created_at=collab.created_at,
        started_at=collab.started_at,
        ended_at=collab.ended_at,
        last_status_check=collab.last_status_check,
    )


@router.get("/list_collabs")
async def list_collabs(
    service: CollabService = Depends(get_collab_service),
    status: list[CollabStatus] | None = Query(None, description="Filter by collab status(es)"),
    collab_type: CollabType | None = Query(None, description="Filter by collab type"),
    cursor: str | None = Query(None, description="Pagination cursor"),
    page_size: int = Query(20, ge=1, le=100, description="Number of items per page"),
) -> CwOut[ListCollabsOut]:
    """List collabs, newest first."""
    result = await service.list_collabs(
        status=status,
        collab_type=collab_type,
        page_size=page_size,
        cursor=cursor,
    )

    return CwOut[ListCollabsOut](
        results=ListCollabsOut(
            collabs=[_collab_out(c) for c in result.collabs],
            next_cursor=result.next_cursor,
        )
    )


@router.get("/get_collab")
async def get_collab(
    collab_id: str = Query(..., description="Collab ID to retrieve"),
    service: CollabService = Depends(get_collab_service),
) -> CwOut[CollabOut]:
    result = await service.get_collab(collab_id=collab_id)
    return CwOut[CollabOut](results=_collab_out(result))


@router.get("/user_collabs")
async def user_collabs(
    user_id: str = Query(..., description="User whose collabs (as creator or partner) to list"),
    service: CollabService = Depends(get_collab_service),
) -> CwOut[ListCollabsOut]:
    result = await service.list_user_collabs(user_id=user_id)
    return CwOut[ListCollabsOut](
        results=ListCollabsOut(collabs=[_collab_out(c) for c in result.collabs])
    )


@router.get("/my_active_collab")
async def my_active_collab(
    user: CurrentUser,
    service: CollabService = Depends(get_collab_service),
) -> CwOut[MyActiveCollabOut]:
    """Get the authenticated user's active collab as creator, if any."""
    result = await service.get_my_active_collab(user_id=user.user_id)
    return CwOut[MyActiveCollabOut](
        results=MyActiveCollabOut(
            has_active_collab=result is not None,
            active_collab=_collab_out(result) if result else None,
        )
    )


@router.post("/create_collab")
@create_collab_rate_limit()
async def create_collab(
    request: Request,
    collab: CreateCollabIn,
    user: CurrentUser,
    service: CollabService = Depends(get_collab_service),
) -> CwOut[CreateCollabOut]:
    """Create a new collab for the authenticated user."""
    params = CollabCreateParams(
        creator_id=user.user_id,
        title=collab.title,
        description=collab.description,
        collab_type=collab.collab_type,
        max_partners=collab.max_partners,
        stream_url=collab.stream_url,
    )

    result = await service.create_collab(params)

    return CwOut[CreateCollabOut](
        results=CreateCollabOut(
            collab_id=result.collab_id,
            status=result.status.value,
        )
    )


@router.post("/match_collab")
@match_collab_rate_limit()
async def match_collab(
    request: Request,
    match: MatchCollabIn,
    user: CurrentUser,
    service: CollabService = Depends(get_collab_service),
) -> CwOut[CollabOut]:
    """Join a collab as a partner."""
    params = CollabMatchParams(
        collab_id=match.collab_id,
        user_id=user.user_id,
        description=match.description,
        stream_url=match.stream_url,
    )

    result = await service.match_collab(params)
    return CwOut[CollabOut](results=_collab_out(result))


@router.post("/refresh_status")
@stream_info_rate_limit()
async def refresh_status(
    request: Request,
    body: CollabIdIn,
    service: CollabService = Depends(get_collab_service),
) -> CwOut[CollabOut]:
    """Recompute the collab status from its streams."""
    result = await service.refresh_status(collab_id=body.collab_id)
    return CwOut[CollabOut](results=_collab_out(result))


@router.post("/refresh_stream_info")
@stream_info_rate_limit()
async def refresh_stream_info(
    request: Request,
    body: CollabIdIn,
    service: CollabService = Depends(get_collab_service),
) -> CwOut[CollabOut]:
    """Refresh title, thumbnail and counters shown for each slot."""
    result = await service.refresh_stream_info(collab_id=body.collab_id)
    return CwOut[CollabOut](results=_collab_out(result))


@router.post("/delete_collab")
async def delete_collab(
    body: CollabIdIn,
    user: CurrentUser,
    service: CollabService = Depends(get_collab_service),
) -> CwOut[str]:
    """Delete an open collab owned by the authenticated user."""
    await service.delete_collab(collab_id=body.collab_id, user_id=user.user_id)
    return CwOut[str](results="OK")
