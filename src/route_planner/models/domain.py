"""Domain models for delivery stops and optimisation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Literal, Mapping, Optional

StopStatus = Literal["pending", "completed", "skipped"]


@dataclass(slots=True)
class Stop:
    """A single delivery stop, optionally geocoded."""

    id: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    name: Optional[str] = None
    notes: Optional[str] = None
    status: StopStatus = "pending"
    completed_at: Optional[datetime] = None
    skipped_at: Optional[datetime] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def coordinates(self) -> tuple[float, float]:
        if not self.has_coordinates:
            raise ValueError(f"Stop '{self.id}' has no coordinates.")
        return (self.latitude, self.longitude)

    def mark_completed(self, at: datetime | None = None) -> None:
        self.status = "completed"
        self.completed_at = at or datetime.now(timezone.utc)
        self.skipped_at = None

    def mark_skipped(self, at: datetime | None = None) -> None:
        self.status = "skipped"
        self.skipped_at = at or datetime.now(timezone.utc)
        self.completed_at = None

    def reset_status(self) -> None:
        self.status = "pending"
        self.completed_at = None
        self.skipped_at = None


@dataclass(slots=True, frozen=True)
class LocationGroup:
    """Stops sharing one physical location, optimised as a single unit.

    ``representative`` is the member itself for singleton groups and a
    synthetic stop (first member's coordinates, composed name and notes)
    otherwise.
    """

    key: str
    members: tuple[Stop, ...]
    representative: Stop

    @property
    def id(self) -> str:
        return self.representative.id

    @property
    def is_group(self) -> bool:
        return len(self.members) > 1

    @property
    def latitude(self) -> float:
        return self.representative.latitude

    @property
    def longitude(self) -> float:
        return self.representative.longitude

    @property
    def coordinates(self) -> tuple[float, float]:
        return self.representative.coordinates


@dataclass(slots=True, frozen=True)
class RouteMetrics:
    total_distance_km: float
    estimated_time_min: float


@dataclass(slots=True, frozen=True)
class OptimizationResult:
    """Immutable snapshot returned by the optimiser.

    ``metadata`` is copied into a read-only mapping on construction.
    """

    ordered_stops: tuple[Stop, ...]
    metrics: RouteMetrics
    excluded_stops: tuple[Stop, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def total_distance(self) -> float:
        return self.metrics.total_distance_km

    @property
    def estimated_time(self) -> float:
        return self.metrics.estimated_time_min

    @property
    def excluded_count(self) -> int:
        return len(self.excluded_stops)
