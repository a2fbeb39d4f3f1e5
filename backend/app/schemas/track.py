"""Track-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from backend.app.constants import TRACK_NAME_MAX_LENGTH


class TrackPointSchema(BaseModel):
    """One GPS sample."""

    lat: float
    lng: float
    timestamp: int = Field(description="Epoch milliseconds")
    altitude: float | None = None  # meters
    accuracy: float | None = None  # meters


class TrackStart(BaseModel):
    """Request schema for starting a new track."""

    name: str = Field(min_length=1, max_length=TRACK_NAME_MAX_LENGTH)
    description: str | None = None


class TrackPointCreate(BaseModel):
    """Request schema for appending a point to an active track."""

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)
    altitude: float | None = Field(default=None, description="Altitude in meters")
    accuracy: float | None = Field(
        default=None, ge=0.0, description="Horizontal accuracy in meters"
    )


class TrackResponse(BaseModel):
    """Response schema for track details."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    name: str
    description: str | None = None
    path: list[TrackPointSchema] = Field(default_factory=list)
    distance: float = 0.0
    duration: float = 0.0
    average_speed: float | None = None
    max_speed: float | None = None
    elevation_gain: float | None = None
    elevation_loss: float | None = None
    start_time: int
    end_time: int
    is_active: bool
    created_at: datetime | None = None


class TrackListResponse(BaseModel):
    """Response schema for the caller's tracks."""

    tracks: list[TrackResponse]
    total: int


class OperationResult(BaseModel):
    """Success marker for mutations that return no record."""

    success: bool = True
    track_id: UUID
    message: str | None = None
