"""GPS track recording API routes."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_current_user_id
from backend.app.db.session import get_db
from backend.app.schemas.track import (
    OperationResult,
    TrackListResponse,
    TrackPointCreate,
    TrackResponse,
    TrackStart,
)
from backend.app.services.track_service import TrackService

logger = logging.getLogger(__name__)

router = APIRouter()

CurrentUser = Annotated[UUID | None, Depends(get_current_user_id)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


@router.post("/start", response_model=TrackResponse, status_code=201)
async def start_track(
    data: TrackStart,
    db: DbSession,
    user_id: CurrentUser,
) -> TrackResponse:
    """
    Start recording a new track.

    Fails with 409 if the caller already has an active track.
    """
    service = TrackService(db)
    return await service.start_track(user_id, data)


@router.get("", response_model=TrackListResponse)
async def list_my_tracks(
    db: DbSession,
    user_id: CurrentUser,
) -> TrackListResponse:
    """
    List the caller's tracks, most recent first.
    """
    service = TrackService(db)
    return await service.list_tracks(user_id)


@router.get("/active", response_model=TrackResponse | None)
async def get_active_track(
    db: DbSession,
    user_id: CurrentUser,
) -> TrackResponse | None:
    """
    Get the track currently being recorded, or null.
    """
    service = TrackService(db)
    return await service.get_active_track(user_id)


@router.get("/{track_id}", response_model=TrackResponse)
async def get_track(
    track_id: UUID,
    db: DbSession,
    user_id: CurrentUser,
) -> TrackResponse:
    """
    Get track details by ID.
    """
    service = TrackService(db)
    return await service.get_track(user_id, track_id)


@router.post("/{track_id}/points", response_model=OperationResult)
async def add_track_point(
    track_id: UUID,
    data: TrackPointCreate,
    db: DbSession,
    user_id: CurrentUser,
) -> OperationResult:
    """
    Append a GPS sample to an active track.
    """
    service = TrackService(db)
    return await service.add_point(user_id, track_id, data)


@router.post("/{track_id}/stop", response_model=TrackResponse)
async def stop_track(
    track_id: UUID,
    db: DbSession,
    user_id: CurrentUser,
) -> TrackResponse:
    """
    Stop recording and compute final statistics.
    """
    service = TrackService(db)
    return await service.stop_track(user_id, track_id)


@router.delete("/{track_id}", response_model=OperationResult)
async def delete_track(
    track_id: UUID,
    db: DbSession,
    user_id: CurrentUser,
) -> OperationResult:
    """
    Delete a track regardless of its state.
    """
    service = TrackService(db)
    return await service.delete_track(user_id, track_id)
