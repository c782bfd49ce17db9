"""Routing request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..models.domain import RouteMetrics, Stop


class StopModel(BaseModel):
    id: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    name: Optional[str] = None
    notes: Optional[str] = None
    status: Literal["pending", "completed", "skipped"] = "pending"
    completed_at: Optional[datetime] = None
    skipped_at: Optional[datetime] = None

    def to_domain(self) -> Stop:
        return Stop(**self.model_dump())

    @classmethod
    def from_domain(cls, stop: Stop) -> "StopModel":
        return cls(
            id=stop.id,
            address=stop.address,
            latitude=stop.latitude,
            longitude=stop.longitude,
            name=stop.name,
            notes=stop.notes,
            status=stop.status,
            completed_at=stop.completed_at,
            skipped_at=stop.skipped_at,
        )


class Coordinate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class OptimizeRequest(BaseModel):
    stops: List[StopModel]
    start: Optional[Coordinate] = Field(
        default=None,
        description="Driver's starting point; the route begins at the stop nearest to it.",
    )


class MetricsRequest(BaseModel):
    stops: List[StopModel]


class MetricsModel(BaseModel):
    total_distance_km: float
    estimated_time_min: float

    @classmethod
    def from_domain(cls, metrics: RouteMetrics) -> "MetricsModel":
        return cls(total_distance_km=metrics.total_distance_km, estimated_time_min=metrics.estimated_time_min)


class OptimizeResponse(BaseModel):
    ordered_stops: List[StopModel]
    total_distance_km: float
    estimated_time_min: float
    excluded_stop_ids: List[str]
    metadata: dict
